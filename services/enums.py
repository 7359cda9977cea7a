"""
Service layer enums
Shared by services, routes and tasks without importing database models
"""

from enum import Enum


class ImportErrorCode(str, Enum):
    """Error codes carried by failed contact import results"""
    EMPTY_INPUT = 'EMPTY_INPUT'
    NONE_QUALIFYING = 'NONE_QUALIFYING'
    LEDGER_WRITE_FAILURE = 'LEDGER_WRITE_FAILURE'
    INVALID_SUBURB = 'INVALID_SUBURB'
    UNSUPPORTED_FILE = 'UNSUPPORTED_FILE'
    CATALOG_READ_FAILURE = 'CATALOG_READ_FAILURE'
    MISSING_OWNER = 'MISSING_OWNER'
    STREET_NOT_FOUND = 'STREET_NOT_FOUND'
    DUPLICATE_CONTACT = 'DUPLICATE_CONTACT'


class ImportStatus(str, Enum):
    """Lifecycle of a contact_import audit record"""
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'
