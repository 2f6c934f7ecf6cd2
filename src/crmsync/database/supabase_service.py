"""Supabase record gateway and owner resolution."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from supabase import create_client, Client
from postgrest.exceptions import APIError
from pydantic import ValidationError

from .gateway import RecordGateway, PersistenceError, has_path_prefix
from .models import NoteResponse, ContactResponse, LeadRecord, ContactType, RecordId
from ..config.settings import SupabaseSettings
from ..utils.logging import get_logger

logger = get_logger(__name__)

NOTES_TABLE = "notes"
CONTACTS_TABLE = "contacts"
LEAD_COLUMNS = "id, name, phone, call_started_at, call_status, contact_type"


def _serialize(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in fields.items()}


def _quote(value: str) -> str:
    """Quote a value for a PostgREST ``or`` filter."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class SupabaseService(RecordGateway):
    """Record gateway over the Supabase ``notes`` and ``contacts`` tables."""

    def __init__(self, settings: SupabaseSettings, use_service_role: bool = False, client: Optional[Client] = None):
        """Initialize the service.

        Args:
            settings: Supabase endpoint and keys
            use_service_role: Authenticate with the service role key, bypassing
                row level security (webhooks have no end user)
            client: Pre-built client, mainly for tests
        """
        self.settings = settings
        self.use_service_role = use_service_role
        self.client = client

    def initialize(self) -> "SupabaseService":
        """Create the Supabase client if one was not supplied."""
        if self.client is not None:
            return self

        key = self.settings.service_role_key if self.use_service_role else self.settings.anon_key
        if not self.settings.url or not key:
            raise PersistenceError("Supabase credentials not configured")

        self.client = create_client(self.settings.url, key)
        logger.info("Supabase service initialized", service_role=self.use_service_role)
        return self

    def for_user(self, access_token: str) -> "SupabaseService":
        """A service whose table requests run as the user owning ``access_token``."""
        scoped = SupabaseService(self.settings, use_service_role=False).initialize()
        scoped.client.postgrest.auth(access_token)
        return scoped

    async def _execute(self, query, action: str):
        """Run a blocking PostgREST query off the event loop."""
        try:
            return await asyncio.to_thread(query.execute)
        except APIError as e:
            logger.error("Supabase request failed", action=action, error=e.message)
            raise PersistenceError(f"{action} failed: {e.message}") from e

    # Note operations

    async def find_existing(self, owner: str, external_ids: Sequence[str]) -> Dict[str, RecordId]:
        if not external_ids:
            return {}
        query = self.client.table(NOTES_TABLE).select("id, drive_file_id").eq(
            "user_id", owner
        ).in_("drive_file_id", list(external_ids))
        result = await self._execute(query, "find existing notes")
        return {row["drive_file_id"]: row["id"] for row in result.data or []}

    async def insert_records(self, records: List[Dict[str, Any]]) -> int:
        if not records:
            return 0
        query = self.client.table(NOTES_TABLE).insert([_serialize(r) for r in records])
        await self._execute(query, "insert notes")
        return len(records)

    async def update_record(self, record_id: RecordId, fields: Dict[str, Any]) -> None:
        query = self.client.table(NOTES_TABLE).update(_serialize(fields)).eq("id", record_id)
        await self._execute(query, "update note")

    async def list_notes(self, owner: str, folder_path: Optional[Sequence[str]] = None) -> List[NoteResponse]:
        query = self.client.table(NOTES_TABLE).select("*").eq("user_id", owner)
        if folder_path:
            # GIN-indexed array containment narrows the rows; prefix order is checked below
            query = query.contains("folder_path", list(folder_path))
        result = await self._execute(query.order("created_at"), "list notes")

        notes = []
        for row in result.data or []:
            try:
                notes.append(NoteResponse(**row))
            except ValidationError as e:
                logger.warning("Invalid note data", note_id=row.get("id"), error=str(e))

        if folder_path:
            notes = [n for n in notes if has_path_prefix(n.folder_path, folder_path)]
        return notes

    async def delete_note(self, owner: str, record_id: RecordId) -> bool:
        query = self.client.table(NOTES_TABLE).delete().eq("id", record_id).eq("user_id", owner)
        result = await self._execute(query, "delete note")
        return bool(result.data)

    # Contact operations

    async def list_contacts(self, contact_type: Optional[str] = None) -> List[ContactResponse]:
        query = self.client.table(CONTACTS_TABLE).select("*")
        if contact_type:
            query = query.eq("contact_type", contact_type)
        result = await self._execute(query.order("created_at", desc=True), "list contacts")

        contacts = []
        for row in result.data or []:
            try:
                contacts.append(ContactResponse(**row))
            except ValidationError as e:
                logger.warning("Invalid contact data", contact_id=row.get("id"), error=str(e))
        return contacts

    async def find_lead_by_phone(self, phone: str, normalized: str, suffix: str) -> Optional[LeadRecord]:
        match = ",".join([
            f"phone.eq.{_quote(phone)}",
            f"phone.eq.{_quote(normalized)}",
            f"phone.ilike.{_quote('%' + suffix + '%')}",
        ])
        query = self.client.table(CONTACTS_TABLE).select(LEAD_COLUMNS).eq(
            "contact_type", ContactType.LEAD.value
        ).or_(match).limit(1)
        result = await self._execute(query, "find lead")

        if not result.data:
            return None
        return LeadRecord(**result.data[0])

    async def update_lead(self, lead_id: RecordId, fields: Dict[str, Any]) -> None:
        query = self.client.table(CONTACTS_TABLE).update(_serialize(fields)).eq("id", lead_id)
        await self._execute(query, "update lead")


class OwnerResolver:
    """Resolve a bearer token to the id of the authenticated user."""

    def __init__(self, service: SupabaseService):
        self.service = service

    async def resolve(self, access_token: str) -> Optional[str]:
        try:
            response = await asyncio.to_thread(self.service.client.auth.get_user, access_token)
        except Exception as e:
            logger.warning("Token verification failed", error=str(e))
            return None

        user = getattr(response, "user", None)
        return user.id if user else None
