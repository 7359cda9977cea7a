"""PropertyRepository - Repository pattern implementation for the property catalog

The catalog is the authority on which streets (and street numbers) exist in
a suburb. The contact import reads it once per run to build its canonical
street index.
"""

from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from crm_database import Property
from repositories.base_repository import BaseRepository
import logging

logger = logging.getLogger(__name__)


class PropertyRepository(BaseRepository[Property]):
    """Repository for Property entity operations"""

    def __init__(self, session: Session):
        """Initialize PropertyRepository with database session

        Args:
            session: SQLAlchemy database session
        """
        super().__init__(session, Property)

    def create(self, **kwargs) -> Property:
        """Create a new catalog property

        Raises:
            ValueError: If suburb or street_name is missing
            SQLAlchemyError: If database operation fails
        """
        if not kwargs.get('suburb'):
            raise ValueError("suburb is required")
        if not kwargs.get('street_name'):
            raise ValueError("street_name is required")

        try:
            property_instance = Property(**kwargs)
            self.session.add(property_instance)
            self.session.commit()
            self.session.refresh(property_instance)

            logger.info(f"Created property {property_instance.id} at {property_instance.street_name}, {property_instance.suburb}")
            return property_instance

        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to create property: {str(e)}")
            raise

    def get_street_pairs(self, suburb: str) -> List[Tuple[str, Optional[str]]]:
        """Distinct (street_name, street_number) pairs of a suburb

        Ordered by street name then street number so the canonical index
        (and therefore fuzzy-match precedence) is reproducible.

        Raises:
            SQLAlchemyError: If the catalog cannot be read
        """
        try:
            rows = self.session.query(
                Property.street_name,
                Property.street_number,
            ).filter(
                Property.suburb == suburb
            ).distinct().order_by(
                Property.street_name,
                Property.street_number,
            ).all()
            return [(row[0], row[1]) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error reading street catalog for suburb {suburb}: {e}")
            raise

    def get_street_names(self, suburb: str) -> List[str]:
        """Distinct street names of a suburb, alphabetical"""
        try:
            rows = self.session.query(Property.street_name).filter(
                Property.suburb == suburb
            ).distinct().order_by(Property.street_name).all()
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error listing streets for suburb {suburb}: {e}")
            return []
