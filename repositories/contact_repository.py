"""
ContactRepository - Data access layer for the contact ledger
Isolates all database queries related to street contacts
"""

from typing import List, Optional, Dict, Any, Tuple
from sqlalchemy.exc import SQLAlchemyError
from repositories.base_repository import BaseRepository
from crm_database import Contact
import logging

logger = logging.getLogger(__name__)


class ContactRepository(BaseRepository[Contact]):
    """Repository for Contact data access"""

    def __init__(self, session):
        """Initialize repository with database session"""
        super().__init__(session, Contact)

    def get_identity_rows(self, suburb: str) -> List[Tuple[Optional[str], ...]]:
        """
        Project the duplicate-detection columns of every contact in a suburb.

        Args:
            suburb: Suburb name (exact match)

        Returns:
            List of (owner_1, owner_2, street_number, street_name, suburb) tuples

        Raises:
            SQLAlchemyError: If the ledger cannot be read
        """
        try:
            rows = self.session.query(
                Contact.owner_1,
                Contact.owner_2,
                Contact.street_number,
                Contact.street_name,
                Contact.suburb,
            ).filter(Contact.suburb == suburb).all()
            return [tuple(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error reading contact keys for suburb {suburb}: {e}")
            raise

    def bulk_create(self, records: List[Dict[str, Any]]) -> List[Contact]:
        """
        Insert contacts in one transaction.

        Either every record is committed or none is: any database error
        (including an identity_hash uniqueness violation) rolls the whole
        batch back and is re-raised.

        Args:
            records: Column values for each new contact

        Returns:
            Inserted contacts with ids assigned
        """
        if not records:
            return []

        try:
            contacts = [Contact(**record) for record in records]
            self.session.add_all(contacts)
            self.session.flush()
            self.session.commit()
            logger.info(f"Inserted {len(contacts)} contacts")
            return contacts
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Bulk contact insert failed, nothing persisted: {e}")
            raise

    def find_by_suburb(self, suburb: str, street_name: Optional[str] = None) -> List[Contact]:
        """
        List a suburb's contacts ordered by street.

        Args:
            suburb: Suburb name (exact match)
            street_name: Optional street filter

        Returns:
            List of contacts
        """
        try:
            query = self.session.query(Contact).filter(Contact.suburb == suburb)
            if street_name:
                query = query.filter(Contact.street_name == street_name)
            return query.order_by(Contact.street_name, Contact.street_number, Contact.id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing contacts for suburb {suburb}: {e}")
            return []
