"""Persistence gateway interface shared by the Supabase and SQL backends."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from .models import RecordId, NoteResponse, ContactResponse, LeadRecord


class PersistenceError(Exception):
    """Raised when a read or write against the record store fails."""
    pass


class RecordGateway(ABC):
    """Row store for synced notes and CRM contacts.

    Notes are keyed by an internal record id; synced notes also carry the
    remote ``drive_file_id``, and ``(user_id, drive_file_id)`` identifies at
    most one row.
    """

    @abstractmethod
    async def find_existing(self, owner: str, external_ids: Sequence[str]) -> Dict[str, RecordId]:
        """Map each already persisted external id of ``owner`` to its record id."""

    @abstractmethod
    async def insert_records(self, records: List[Dict[str, Any]]) -> int:
        """Insert note rows in one call; returns the number inserted."""

    @abstractmethod
    async def update_record(self, record_id: RecordId, fields: Dict[str, Any]) -> None:
        """Update a single note row."""

    @abstractmethod
    async def list_notes(self, owner: str, folder_path: Optional[Sequence[str]] = None) -> List[NoteResponse]:
        """Notes of ``owner``; with ``folder_path``, only those under that path prefix."""

    @abstractmethod
    async def delete_note(self, owner: str, record_id: RecordId) -> bool:
        """Delete one of ``owner``'s notes; False when it does not exist."""

    @abstractmethod
    async def list_contacts(self, contact_type: Optional[str] = None) -> List[ContactResponse]:
        """All contacts, optionally restricted to one contact type."""

    @abstractmethod
    async def find_lead_by_phone(self, phone: str, normalized: str, suffix: str) -> Optional[LeadRecord]:
        """First lead whose phone equals ``phone`` or ``normalized``, or contains ``suffix``."""

    @abstractmethod
    async def update_lead(self, lead_id: RecordId, fields: Dict[str, Any]) -> None:
        """Update the call tracking columns of a lead."""


def has_path_prefix(path: Optional[Sequence[str]], prefix: Sequence[str]) -> bool:
    path = list(path or [])
    return path[:len(prefix)] == list(prefix)
