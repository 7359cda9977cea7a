"""
Repository Layer - Data Access Abstraction
Implements the Repository Pattern for database isolation
"""

from .base_repository import BaseRepository
from .contact_repository import ContactRepository
from .contact_import_repository import ContactImportRepository
from .property_repository import PropertyRepository

__all__ = [
    'BaseRepository',
    'ContactRepository',
    'ContactImportRepository',
    'PropertyRepository',
]
