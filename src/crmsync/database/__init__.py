"""Database package for the CRM sync service."""

from .database import DatabaseManager, init_database

from .models import (
    NoteModel,
    ContactModel,
    SyncedItem,
    NoteResponse,
    ContactResponse,
    LeadRecord,
    CallStatus,
    ContactType,
    RecordId,
    utc_now
)

from .gateway import RecordGateway, PersistenceError, has_path_prefix

from .service import DatabaseService
from .supabase_service import SupabaseService, OwnerResolver

__all__ = [
    # Database management
    "DatabaseManager",
    "init_database",

    # Models
    "NoteModel",
    "ContactModel",
    "SyncedItem",
    "NoteResponse",
    "ContactResponse",
    "LeadRecord",
    "CallStatus",
    "ContactType",
    "RecordId",
    "utc_now",

    # Gateways
    "RecordGateway",
    "PersistenceError",
    "has_path_prefix",
    "DatabaseService",
    "SupabaseService",
    "OwnerResolver"
]
