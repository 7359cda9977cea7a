"""
ContactImportRepository - Data access layer for contact import audit records
"""

from typing import List, Optional, Dict, Any
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from repositories.base_repository import BaseRepository
from crm_database import ContactImport
from services.enums import ImportStatus
import logging

logger = logging.getLogger(__name__)


class ContactImportRepository(BaseRepository[ContactImport]):
    """Repository for ContactImport data access"""

    def __init__(self, session):
        """Initialize repository with database session"""
        super().__init__(session, ContactImport)

    def start_import(self, suburb: str, filename: Optional[str], imported_by: Optional[str],
                     total_rows: int) -> ContactImport:
        """
        Create and commit a pending import record.

        The record is committed on its own so it survives a rollback of the
        contact insert that follows.
        """
        contact_import = self.create(
            suburb=suburb,
            filename=filename,
            imported_by=imported_by,
            total_rows=total_rows,
            status=ImportStatus.PENDING.value,
        )
        self.commit()
        return contact_import

    def finish_import(self, import_id: int, status: ImportStatus, counts: Dict[str, int],
                      error_code: Optional[str] = None, error_message: Optional[str] = None,
                      import_metadata: Optional[Dict[str, Any]] = None) -> Optional[ContactImport]:
        """
        Record the terminal state of an import.

        Args:
            import_id: ContactImport ID
            status: COMPLETED or FAILED
            counts: accepted/duplicate/unmatched/skipped counts
            error_code: Failure code, if any
            error_message: Failure message, if any
            import_metadata: Duplicate and unmatched previews, warnings

        Returns:
            Updated ContactImport or None if not found
        """
        contact_import = self.get_by_id(import_id)
        if not contact_import:
            logger.warning(f"Contact import {import_id} not found")
            return None

        self.update(
            contact_import,
            status=status.value,
            accepted_count=counts.get('accepted_count', 0),
            duplicate_count=counts.get('duplicate_count', 0),
            unmatched_count=counts.get('unmatched_count', 0),
            skipped_count=counts.get('skipped_count', 0),
            error_code=error_code,
            error_message=error_message,
            import_metadata=import_metadata,
        )
        self.commit()
        return contact_import

    def get_recent(self, suburb: Optional[str] = None, limit: int = 10) -> List[ContactImport]:
        try:
            query = self.session.query(ContactImport)
            if suburb:
                query = query.filter(ContactImport.suburb == suburb)
            return query.order_by(desc(ContactImport.imported_at), desc(ContactImport.id)).limit(limit).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing contact imports: {e}")
            return []
