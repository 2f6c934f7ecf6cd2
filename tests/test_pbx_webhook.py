"""Tests for the PBX call-event handler."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from crmsync.database import ContactModel, LeadRecord
from structlog.testing import capture_logs

from crmsync.webhooks import (
    CallEvent,
    CallEventHandler,
    InvalidCallEventError,
    LeadNotFoundError,
    normalize_phone,
    phone_suffix,
    transition
)


def add_contact(db_manager, **fields):
    with db_manager.session_scope() as session:
        contact = ContactModel(**fields)
        session.add(contact)
        session.flush()
        return contact.id


def load_contact(db_manager, contact_id):
    with db_manager.session_scope() as session:
        return session.get(ContactModel, contact_id)


@pytest.fixture
def lead_id(db_manager):
    return add_contact(db_manager, name="Ada Lovelace", phone="5551234567", contact_type="lead")


@pytest.fixture
def handler(db_service, clock):
    return CallEventHandler(db_service, clock=clock)


class TestNormalizePhone:

    @pytest.mark.parametrize("raw, expected", [
        ("+1 (555) 123-4567", "+15551234567"),
        ("555.123.4567", "5551234567"),
        ("  5551234567 ", "5551234567"),
        ("+44 20 7946 0958", "+442079460958"),
    ])
    def test_strips_punctuation_and_whitespace(self, raw, expected):
        assert normalize_phone(raw) == expected

    def test_suffix_keeps_only_the_last_nine_digits(self):
        assert phone_suffix("+15551234567") == "551234567"
        assert phone_suffix("+1%555_123_4567") == "551234567"
        assert phone_suffix("%") == ""


class TestCallScenario:

    @pytest.mark.asyncio
    async def test_ringing_answered_hangup(self, handler, clock, db_manager, lead_id):
        ringing = await handler.handle({"event": "ringing", "phone": "+1 (555) 123-4567"})
        assert ringing["success"] is True
        assert ringing["lead_id"] == lead_id
        assert ringing["lead_name"] == "Ada Lovelace"
        assert ringing["event"] == "ringing"
        assert ringing["call_status"] == "ringing"
        assert ringing["call_started_at"] is None
        assert load_contact(db_manager, lead_id).call_status == "ringing"

        answered = await handler.handle({"event": "answered", "phone": "+1 (555) 123-4567"})
        assert answered["call_status"] == "in_call"
        assert answered["call_started_at"] == clock.now.isoformat()
        contact = load_contact(db_manager, lead_id)
        assert contact.call_status == "in_call"
        assert contact.call_started_at is not None

        clock.advance(42)
        hangup = await handler.handle({"event": "hangup", "phone": "+1 (555) 123-4567"})
        assert hangup["call_status"] == "call_done"
        assert hangup["last_call_duration"] == 42
        assert hangup["last_call_at"] == clock.now.isoformat()

        contact = load_contact(db_manager, lead_id)
        assert contact.call_status == "call_done"
        assert contact.last_call_duration == 42

    @pytest.mark.asyncio
    async def test_ringing_after_call_done_clears_start(self, handler, clock, db_manager, lead_id):
        await handler.handle({"event": "answered", "phone": "5551234567"})
        clock.advance(10)
        await handler.handle({"event": "hangup", "phone": "5551234567"})
        await handler.handle({"event": "ringing", "phone": "5551234567"})

        contact = load_contact(db_manager, lead_id)
        assert contact.call_status == "ringing"
        assert contact.call_started_at is None
        assert contact.last_call_duration == 10

    @pytest.mark.asyncio
    async def test_hangup_without_answer_has_no_duration(self, handler, db_manager, lead_id):
        result = await handler.handle({"event": "hangup", "phone": "5551234567"})

        assert result["call_status"] == "call_done"
        assert result["last_call_duration"] is None
        assert load_contact(db_manager, lead_id).last_call_at is not None


class TestLookup:

    @pytest.mark.asyncio
    async def test_exact_literal_match(self, handler, db_manager):
        lead = add_contact(db_manager, name="Literal", phone="+1 (555) 000-1111", contact_type="lead")

        result = await handler.handle({"event": "ringing", "phone": "+1 (555) 000-1111"})

        assert result["lead_id"] == lead

    @pytest.mark.asyncio
    async def test_suffix_match_tolerates_country_code(self, handler, db_manager):
        lead = add_contact(db_manager, name="Suffix", phone="+34 612345678", contact_type="lead")

        result = await handler.handle({"event": "ringing", "phone": "0034612345678"})

        assert result["lead_id"] == lead

    @pytest.mark.asyncio
    async def test_plain_contacts_are_not_matched(self, handler, db_manager):
        add_contact(db_manager, name="Friend", phone="5559876543", contact_type="contact")

        with pytest.raises(LeadNotFoundError) as exc_info:
            await handler.handle({"event": "ringing", "phone": "5559876543"})

        assert exc_info.value.status == 404
        assert exc_info.value.body() == {
            "success": False,
            "message": "No lead found with this phone number",
            "phone": "5559876543",
        }


class TestValidation:

    @pytest.mark.asyncio
    async def test_unknown_event_names_valid_set(self):
        gateway = AsyncMock()
        handler = CallEventHandler(gateway)

        with pytest.raises(InvalidCallEventError) as exc_info:
            await handler.handle({"event": "busy", "phone": "5551234567"})

        assert exc_info.value.status == 400
        assert str(exc_info.value) == "Invalid event. Must be one of: ringing, answered, hangup"
        gateway.find_lead_by_phone.assert_not_awaited()
        gateway.update_lead.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"event": "ringing"},
        {"phone": "5551234567"},
        {"event": "", "phone": "5551234567"},
        None,
        ["ringing", "5551234567"],
    ])
    async def test_missing_fields_rejected_before_lookup(self, payload):
        gateway = AsyncMock()
        handler = CallEventHandler(gateway)

        with pytest.raises(InvalidCallEventError):
            await handler.handle(payload)

        gateway.find_lead_by_phone.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_phone_without_digits_rejected(self):
        gateway = AsyncMock()

        with pytest.raises(InvalidCallEventError):
            await CallEventHandler(gateway).handle({"event": "ringing", "phone": " - "})

        gateway.find_lead_by_phone.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_uses_exact_normalized_and_suffix(self):
        gateway = AsyncMock()
        gateway.find_lead_by_phone.return_value = LeadRecord(id="abc", name="Grace")
        handler = CallEventHandler(gateway)

        await handler.handle({"event": "ringing", "phone": "+1 (555) 123-4567"})

        gateway.find_lead_by_phone.assert_awaited_once_with("+1 (555) 123-4567", "+15551234567", "551234567")
        gateway.update_lead.assert_awaited_once_with("abc", {"call_status": "ringing", "call_started_at": None})


class TestTransition:

    def test_hangup_handles_naive_start_time(self):
        lead = LeadRecord(id=1, name="Naive", call_started_at=datetime(2026, 1, 9, 14, 0, 0))
        now = datetime(2026, 1, 9, 14, 1, 30, tzinfo=timezone.utc)

        update = transition(CallEvent.HANGUP, lead, now)

        assert update["last_call_duration"] == 90

    def test_hangup_rounds_to_whole_seconds(self):
        start = datetime(2026, 1, 9, 14, 0, 0, tzinfo=timezone.utc)
        lead = LeadRecord(id=1, name="Round", call_started_at=start)
        now = datetime(2026, 1, 9, 14, 0, 41, 600000, tzinfo=timezone.utc)

        assert transition(CallEvent.HANGUP, lead, now)["last_call_duration"] == 42


class TestWildcardPhones:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phone", ["%", "_", "%%", "%_%"])
    async def test_phone_without_digits_never_reaches_lookup(self, phone):
        gateway = AsyncMock()

        with pytest.raises(InvalidCallEventError) as exc_info:
            await CallEventHandler(gateway).handle({"event": "ringing", "phone": phone})

        assert str(exc_info.value) == "Invalid phone number"
        gateway.find_lead_by_phone.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wildcards_do_not_match_other_leads(self, handler, db_manager, lead_id):
        with pytest.raises(LeadNotFoundError):
            await handler.handle({"event": "ringing", "phone": "%9_%"})

        assert load_contact(db_manager, lead_id).call_status is None


class TestLogging:

    @pytest.mark.asyncio
    async def test_handled_event_is_logged(self, handler, lead_id):
        with capture_logs() as logs:
            await handler.handle({"event": "answered", "phone": "5551234567"})

        updated = [entry for entry in logs if entry["event"] == "Lead call status updated"]
        assert updated[0]["call_event"] == "answered"
        assert updated[0]["lead_id"] == lead_id
