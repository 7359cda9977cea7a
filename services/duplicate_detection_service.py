"""
DuplicateDetectionService - identity keys and duplicate checks for contact imports

The identity key of a contact is
    (lower(owner_1), lower(owner_2), street_number, street_name, suburb)
with blank values compared as empty strings. A detector instance is seeded
with the ledger's keys for one suburb and then remembers every key it
accepts, so it must be fed rows in file order.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Set, Tuple

logger = logging.getLogger(__name__)

IdentityKey = Tuple[str, str, str, str, str]


def _clean(value) -> str:
    return '' if value is None else str(value).strip()


def identity_key(owner_1, owner_2, street_number, street_name, suburb) -> IdentityKey:
    """Build the composite key used to decide whether two contacts are the same"""
    return (
        _clean(owner_1).lower(),
        _clean(owner_2).lower(),
        _clean(street_number),
        _clean(street_name),
        _clean(suburb),
    )


def identity_hash(key: IdentityKey) -> str:
    """Stable SHA-256 of an identity key, stored on ledger rows"""
    return hashlib.sha256('\x1f'.join(key).encode('utf-8')).hexdigest()


def describe_contact(owner_1: str, owner_2: str, street_number: Optional[str], street_name: str) -> str:
    """Human-readable label, e.g. 'Jane Smith & John Smith at 12 Oak Ave'"""
    owners = ' & '.join(name for name in (owner_1, owner_2) if name)
    return f"{owners} at {street_number or 'N/A'} {street_name}"


@dataclass
class DuplicateCheck:
    is_duplicate: bool
    key: IdentityKey
    description: Optional[str] = None


class DuplicateDetectionService:
    """Stateful duplicate detector for one import run"""

    def __init__(self, existing_keys: Optional[Iterable[IdentityKey]] = None):
        self.existing_keys: Set[IdentityKey] = set(existing_keys or ())
        self.accepted_keys: Set[IdentityKey] = set()

    @classmethod
    def from_ledger_rows(cls, rows: Iterable[Tuple]) -> 'DuplicateDetectionService':
        """Seed from raw (owner_1, owner_2, street_number, street_name, suburb) ledger tuples"""
        return cls(identity_key(*row) for row in rows)

    def check(self, contact) -> DuplicateCheck:
        """Classify a resolved contact; new keys are registered as accepted"""
        key = identity_key(contact.owner_1, contact.owner_2, contact.street_number,
                           contact.street_name, contact.suburb)

        if key in self.existing_keys or key in self.accepted_keys:
            description = describe_contact(contact.owner_1, contact.owner_2,
                                           contact.street_number, contact.street_name)
            source = 'ledger' if key in self.existing_keys else 'file'
            logger.debug(f"Duplicate ({source}): {description}")
            return DuplicateCheck(is_duplicate=True, key=key, description=description)

        self.accepted_keys.add(key)
        return DuplicateCheck(is_duplicate=False, key=key)

    def is_known(self, key: IdentityKey) -> bool:
        return key in self.existing_keys or key in self.accepted_keys
