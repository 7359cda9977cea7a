"""
HeaderMappingService - maps spreadsheet column headers to canonical contact fields

Spreadsheet exports name the same column many ways ("Owner1 Email",
"owner_1_email", "OWN1 MOB"). Headers are normalized (trimmed, lowercased,
whitespace runs replaced with "_") and then translated through an alias
table. The resulting header map is built once per import run.
"""

import re
import logging
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

CANONICAL_FIELDS = (
    'owner_1',
    'owner_2',
    'owner_1_email',
    'owner_2_email',
    'phone_number',
    'owner_1_mobile',
    'owner_2_mobile',
    'outcome',
    'street_name',
    'street_number',
    'suburb',
    'status',
    'last_sold_date',
    'price',
    'marketing_plan',
    'activity_log',
)

OWNER_FIELDS = ('owner_1', 'owner_2')

# Normalized header -> canonical field
HEADER_ALIASES = {
    'owner1': 'owner_1',
    'owner2': 'owner_2',
    'owner_one': 'owner_1',
    'owner_two': 'owner_2',
    'owner1_email': 'owner_1_email',
    'owner2_email': 'owner_2_email',
    'own1_email': 'owner_1_email',
    'own2_email': 'owner_2_email',
    'own1_mob': 'owner_1_mobile',
    'own2_mob': 'owner_2_mobile',
    'owner1_mobile': 'owner_1_mobile',
    'owner2_mobile': 'owner_2_mobile',
    'phone': 'phone_number',
    'phone_no': 'phone_number',
    'street': 'street_name',
    'street_no': 'street_number',
    'street_num': 'street_number',
    'last_sold': 'last_sold_date',
    'sold_date': 'last_sold_date',
    'sold_price': 'price',
    'last_sold_price': 'price',
}

_WHITESPACE = re.compile(r'\s+')


def normalize_header(header) -> str:
    """Trim, lowercase and replace whitespace runs with underscores"""
    if header is None:
        return ''
    return _WHITESPACE.sub('_', str(header).strip().lower())


class HeaderMappingService:
    """Builds header maps for contact spreadsheets"""

    def __init__(self, aliases: Optional[Dict[str, str]] = None):
        self.aliases = dict(HEADER_ALIASES)
        if aliases:
            self.aliases.update(aliases)

    def canonical_field_for(self, header) -> Optional[str]:
        """Return the canonical field a header maps to, or None"""
        normalized = normalize_header(header)
        field = self.aliases.get(normalized, normalized)
        return field if field in CANONICAL_FIELDS else None

    def build_header_map(self, header_row: Iterable) -> Dict[str, str]:
        """Map canonical field -> original header string

        Args:
            header_row: Header strings in file order

        Returns:
            Dict keyed by canonical field; fields without a header are absent.
            When two headers resolve to the same field the first one wins.
        """
        header_map: Dict[str, str] = {}
        for header in header_row or []:
            field = self.canonical_field_for(header)
            if field is None:
                continue
            if field in header_map:
                logger.debug(f"Ignoring header '{header}': '{field}' already mapped to '{header_map[field]}'")
                continue
            header_map[field] = header

        missing = self.missing_fields(header_map)
        if missing:
            logger.info(f"Spreadsheet has no column for: {', '.join(missing)}")
        if not any(field in header_map for field in OWNER_FIELDS):
            logger.warning("Spreadsheet has no owner_1 or owner_2 column; every row will be skipped")

        return header_map

    @staticmethod
    def missing_fields(header_map: Dict[str, str]) -> List[str]:
        return [field for field in CANONICAL_FIELDS if field not in header_map]
