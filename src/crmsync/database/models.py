"""Database models for the CRM sync service."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Union
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, JSON, Boolean, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base
from pydantic import BaseModel, field_validator


Base = declarative_base()

# Supabase hands out UUID strings, the local SQL gateway integers.
RecordId = Union[int, str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CallStatus(str, Enum):
    """Call status of a lead, driven by PBX events."""
    RINGING = "ringing"
    IN_CALL = "in_call"
    CALL_DONE = "call_done"


class ContactType(str, Enum):
    CONTACT = "contact"
    LEAD = "lead"


# SQLAlchemy Models (Database Tables)

class NoteModel(Base):
    """Notes table; synced Drive items are stored as notes."""

    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    content = Column(Text, nullable=False)
    visibility = Column(String(20), default="personal", nullable=False)

    # Drive metadata
    drive_file_id = Column(String(255), nullable=True, index=True)
    mime_type = Column(String(255), nullable=True)
    is_folder = Column(Boolean, default=False, nullable=False, index=True)
    folder_path = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "drive_file_id", name="uq_notes_user_drive_file"),
    )

    def __repr__(self):
        return f"<NoteModel(id={self.id}, drive_file_id='{self.drive_file_id}')>"


class ContactModel(Base):
    """Contacts and leads table with call tracking columns."""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), default="", nullable=False)
    company = Column(String(255), default="", nullable=False)
    phone = Column(String(50), nullable=True, index=True)
    contact_type = Column(String(20), default=ContactType.CONTACT.value, nullable=False)
    status = Column(String(50), nullable=True)

    # Call tracking
    call_status = Column(String(20), nullable=True)
    call_started_at = Column(DateTime(timezone=True), nullable=True)
    last_call_duration = Column(Integer, nullable=True)
    last_call_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<ContactModel(id={self.id}, name='{self.name}', type='{self.contact_type}')>"


# Pydantic Models (Transfer Objects)

class SyncedItem(BaseModel):
    """An item discovered by walking a remote folder tree."""
    external_id: str
    display_label: str
    media_type: str = ""
    is_container: bool = False
    path: List[str]
    owner: str
    visibility: str = "personal"

    def to_record(self) -> Dict[str, Any]:
        """Column values for inserting this item as a note."""
        return {
            "user_id": self.owner,
            "content": self.display_label,
            "drive_file_id": self.external_id,
            "mime_type": self.media_type,
            "is_folder": self.is_container,
            "folder_path": list(self.path),
            "visibility": self.visibility,
        }

    def update_fields(self, modified_at: datetime) -> Dict[str, Any]:
        """Column values refreshed when the item already exists."""
        return {
            "content": self.display_label,
            "mime_type": self.media_type,
            "folder_path": list(self.path),
            "updated_at": modified_at,
        }


class NoteResponse(BaseModel):
    """A persisted note (a synced item when ``drive_file_id`` is set)."""
    id: RecordId
    user_id: str
    content: str
    visibility: str = "personal"
    drive_file_id: Optional[str] = None
    mime_type: Optional[str] = None
    is_folder: bool = False
    folder_path: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LeadRecord(BaseModel):
    """The lead columns the call-event webhook reads."""
    id: RecordId
    name: str
    phone: Optional[str] = None
    contact_type: str = ContactType.LEAD.value
    call_status: Optional[str] = None
    call_started_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContactResponse(BaseModel):
    """A contact or lead row."""
    id: RecordId
    name: str
    email: str = ""
    company: str = ""
    phone: Optional[str] = None
    contact_type: str = ContactType.CONTACT.value
    status: Optional[str] = None
    call_status: Optional[str] = None
    call_started_at: Optional[datetime] = None
    last_call_duration: Optional[int] = None
    last_call_at: Optional[datetime] = None

    @field_validator("email", "company", mode="before")
    @classmethod
    def blank_if_null(cls, v):
        return "" if v is None else v

    class Config:
        from_attributes = True
