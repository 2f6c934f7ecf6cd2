"""PBX call-event ingestion: moves a lead through its call states."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..database import RecordGateway, LeadRecord, CallStatus, utc_now
from ..utils.logging import get_logger


logger = get_logger(__name__)

PHONE_PUNCTUATION = re.compile(r"[\s\-().]")
NON_DIGITS = re.compile(r"\D")
SUFFIX_DIGITS = 9


class CallEvent(str, Enum):
    RINGING = "ringing"
    ANSWERED = "answered"
    HANGUP = "hangup"


VALID_EVENTS = ", ".join(e.value for e in CallEvent)


class CallEventError(Exception):
    """Base class for webhook errors that map to a client response."""

    status = 400

    def body(self) -> Dict[str, Any]:
        return {"error": str(self)}


class InvalidCallEventError(CallEventError):
    """The payload is missing a field or names an unknown event."""
    status = 400


class LeadNotFoundError(CallEventError):
    """No lead matches the phone number."""

    status = 404

    def __init__(self, phone: str):
        super().__init__("No lead found with this phone number")
        self.phone = phone

    def body(self) -> Dict[str, Any]:
        return {"success": False, "message": str(self), "phone": self.phone}


def normalize_phone(phone: str) -> str:
    """Strip whitespace, dashes, dots and parentheses: ``"+1 (555) 123-4567"`` -> ``"+15551234567"``."""
    return PHONE_PUNCTUATION.sub("", phone)


def phone_suffix(normalized: str) -> str:
    """The last nine digits, ignoring any non-digit characters."""
    return NON_DIGITS.sub("", normalized)[-SUFFIX_DIGITS:]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are stored as UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def transition(event: CallEvent, lead: LeadRecord, now: datetime) -> Dict[str, Any]:
    """Column updates for ``lead`` when ``event`` arrives at ``now``."""
    if event is CallEvent.RINGING:
        return {
            "call_status": CallStatus.RINGING.value,
            "call_started_at": None,
        }

    if event is CallEvent.ANSWERED:
        return {
            "call_status": CallStatus.IN_CALL.value,
            "call_started_at": now,
        }

    duration: Optional[int] = None
    if lead.call_started_at:
        duration = round((now - _as_utc(lead.call_started_at)).total_seconds())

    return {
        "call_status": CallStatus.CALL_DONE.value,
        "last_call_duration": duration,
        "last_call_at": now,
    }


class CallEventHandler:
    """Applies ``ringing`` / ``answered`` / ``hangup`` events to leads."""

    def __init__(self, gateway: RecordGateway, clock: Callable[[], datetime] = utc_now):
        self.gateway = gateway
        self.clock = clock

    def parse(self, payload: Any) -> tuple:
        """Validate a webhook body, returning ``(event, phone)``."""
        if not isinstance(payload, dict):
            raise InvalidCallEventError("Request body must be a JSON object")

        event, phone = payload.get("event"), payload.get("phone")
        if not event or not phone:
            raise InvalidCallEventError("Missing required fields: event and phone")

        try:
            call_event = CallEvent(event)
        except ValueError:
            raise InvalidCallEventError(f"Invalid event. Must be one of: {VALID_EVENTS}")

        if not isinstance(phone, str) or not NON_DIGITS.sub("", phone):
            raise InvalidCallEventError("Invalid phone number")

        return call_event, phone

    async def handle(self, payload: Any) -> Dict[str, Any]:
        """Process one webhook payload and return the response body.

        Raises:
            InvalidCallEventError: Before any lookup, for malformed payloads
            LeadNotFoundError: When no lead matches the phone number
        """
        event, phone = self.parse(payload)
        logger.info("PBX webhook received", call_event=event.value, phone=phone)

        normalized = normalize_phone(phone)
        lead = await self.gateway.find_lead_by_phone(phone, normalized, phone_suffix(normalized))
        if lead is None:
            logger.info("No lead found for phone", phone=phone)
            raise LeadNotFoundError(phone)

        update = transition(event, lead, self.clock())
        await self.gateway.update_lead(lead.id, update)

        logger.info("Lead call status updated", lead_id=lead.id, call_event=event.value, call_status=update["call_status"])

        return {
            "success": True,
            "lead_id": lead.id,
            "lead_name": lead.name,
            "event": event.value,
            **{k: v.isoformat() if isinstance(v, datetime) else v for k, v in update.items()},
        }
