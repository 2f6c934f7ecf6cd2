"""SQLAlchemy-backed record gateway for local development and tests."""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from .database import DatabaseManager
from .gateway import RecordGateway, PersistenceError, has_path_prefix
from .models import (
    NoteModel, ContactModel,
    NoteResponse, ContactResponse, LeadRecord,
    ContactType, RecordId
)
from ..utils.logging import get_logger


logger = get_logger("database.service")


class DatabaseService(RecordGateway):
    """Record gateway over a SQL database."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    @contextmanager
    def transaction(self):
        """Transactional session scope; driver errors surface as PersistenceError."""
        try:
            with self.db_manager.session_scope() as session:
                yield session
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e

    # Note operations

    async def find_existing(self, owner: str, external_ids: Sequence[str]) -> Dict[str, RecordId]:
        if not external_ids:
            return {}
        with self.transaction() as session:
            rows = session.query(NoteModel.id, NoteModel.drive_file_id).filter(
                NoteModel.user_id == owner,
                NoteModel.drive_file_id.in_(list(external_ids))
            ).all()
            return {drive_file_id: note_id for note_id, drive_file_id in rows}

    async def insert_records(self, records: List[Dict[str, Any]]) -> int:
        if not records:
            return 0
        with self.transaction() as session:
            session.add_all([NoteModel(**record) for record in records])
        logger.debug("Notes inserted", count=len(records))
        return len(records)

    async def update_record(self, record_id: RecordId, fields: Dict[str, Any]) -> None:
        with self.transaction() as session:
            updated = session.query(NoteModel).filter(NoteModel.id == record_id).update(
                fields, synchronize_session=False
            )
        if not updated:
            logger.warning("Note to update not found", record_id=record_id)

    async def list_notes(self, owner: str, folder_path: Optional[Sequence[str]] = None) -> List[NoteResponse]:
        with self.transaction() as session:
            notes = session.query(NoteModel).filter(
                NoteModel.user_id == owner
            ).order_by(NoteModel.id).all()
            results = [NoteResponse.model_validate(note) for note in notes]

        if folder_path:
            results = [note for note in results if has_path_prefix(note.folder_path, folder_path)]
        return results

    async def delete_note(self, owner: str, record_id: RecordId) -> bool:
        with self.transaction() as session:
            deleted = session.query(NoteModel).filter(
                NoteModel.id == record_id,
                NoteModel.user_id == owner
            ).delete(synchronize_session=False)

        logger.info("Note delete requested", record_id=record_id, deleted=bool(deleted))
        return bool(deleted)

    # Contact operations

    async def list_contacts(self, contact_type: Optional[str] = None) -> List[ContactResponse]:
        with self.transaction() as session:
            query = session.query(ContactModel)
            if contact_type:
                query = query.filter(ContactModel.contact_type == contact_type)
            return [ContactResponse.model_validate(c) for c in query.order_by(ContactModel.id).all()]

    async def find_lead_by_phone(self, phone: str, normalized: str, suffix: str) -> Optional[LeadRecord]:
        with self.transaction() as session:
            lead = session.query(ContactModel).filter(
                ContactModel.contact_type == ContactType.LEAD.value,
                or_(
                    ContactModel.phone == phone,
                    ContactModel.phone == normalized,
                    ContactModel.phone.ilike(f"%{suffix}%")
                )
            ).order_by(ContactModel.id).first()
            return LeadRecord.model_validate(lead) if lead else None

    async def update_lead(self, lead_id: RecordId, fields: Dict[str, Any]) -> None:
        with self.transaction() as session:
            session.query(ContactModel).filter(ContactModel.id == lead_id).update(
                fields, synchronize_session=False
            )

