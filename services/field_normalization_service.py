"""
FieldNormalizationService - coerces raw spreadsheet rows into NormalizedContact drafts

Handles:
1. Trimming and blacklist tokens ("NA", "Unsure", "DNC", "DNC/unsure")
2. Currency parsing for price ("$1,250,000" -> Decimal)
3. Date parsing for last_sold_date (ISO, day-first, datetime strings, Excel serials)
4. Promotion of owner_1_mobile into an empty phone_number

Parse failures never raise. The value degrades to None; in strict mode the
raw text is also reported as a FieldIssue so the caller can surface it.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional

from services.header_mapping_service import CANONICAL_FIELDS
from utils.datetime_utils import parse_spreadsheet_date

logger = logging.getLogger(__name__)

BLACKLIST_TOKENS = frozenset({'NA', 'Unsure', 'DNC', 'DNC/unsure'})

# Exclusive bound of the ledger price column, Numeric(14, 2)
PRICE_LIMIT = Decimal(10) ** 12
CENTS = Decimal('0.01')

STRING_FIELDS = tuple(f for f in CANONICAL_FIELDS if f not in ('price', 'last_sold_date'))


@dataclass
class NormalizedContact:
    """A contact row with every canonical field coerced to its type"""
    owner_1: str = ''
    owner_2: str = ''
    owner_1_email: str = ''
    owner_2_email: str = ''
    phone_number: str = ''
    owner_1_mobile: str = ''
    owner_2_mobile: str = ''
    outcome: str = ''
    street_name: str = ''
    street_number: Optional[str] = None
    suburb: str = ''
    status: str = ''
    last_sold_date: Optional[str] = None
    price: Optional[Decimal] = None
    marketing_plan: str = ''
    activity_log: str = ''

    @property
    def has_owner(self) -> bool:
        return bool(self.owner_1 or self.owner_2)

    def to_record(self) -> Dict[str, Any]:
        """Column values for the contact ledger"""
        record = asdict(self)
        record['last_sold_date'] = date.fromisoformat(self.last_sold_date) if self.last_sold_date else None
        for key in STRING_FIELDS:
            if key in ('street_name', 'suburb'):
                continue
            if record[key] == '':
                record[key] = None
        return record


@dataclass
class FieldIssue:
    """A value that was present in the sheet but could not be parsed"""
    row_index: int
    field: str
    raw_value: str

    def to_dict(self) -> Dict[str, Any]:
        return {'row': self.row_index, 'field': self.field, 'value': self.raw_value}


@dataclass
class NormalizationResult:
    contact: NormalizedContact
    issues: List[FieldIssue] = field(default_factory=list)


def cell_to_text(value) -> str:
    """Render a cell as trimmed text; integral floats lose their '.0'"""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def parse_price(value) -> Optional[Decimal]:
    """Parse a currency cell; None when it is not a finite number the ledger can store"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        if isinstance(value, (int, float)):
            text = str(value)
        else:
            text = str(value).replace('$', '').replace(',', '').strip()
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    if not amount.is_finite() or abs(amount) >= PRICE_LIMIT:
        return None
    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    return amount if abs(amount) < PRICE_LIMIT else None


class FieldNormalizationService:
    """Turns one RawRow into a draft NormalizedContact"""

    def __init__(self, strict_parsing: bool = False, default_status: Optional[str] = None):
        """
        Args:
            strict_parsing: Report unparseable dates and prices as FieldIssues
            default_status: Status given to rows that leave it blank
        """
        self.strict_parsing = strict_parsing
        self.default_status = default_status

    def normalize_row(self, row: Mapping[str, Any], header_map: Mapping[str, str],
                      row_index: int = 0) -> NormalizationResult:
        """Normalize one spreadsheet row

        Args:
            row: Original header -> cell value
            header_map: Canonical field -> original header
            row_index: Position of the row in the file (for issue reporting)

        Returns:
            NormalizationResult with the draft contact and any strict-mode issues
        """
        contact = NormalizedContact()
        issues: List[FieldIssue] = []

        for name in STRING_FIELDS:
            setattr(contact, name, self._string_value(self._raw(row, header_map, name)))
        contact.street_number = contact.street_number or None

        raw_price = self._raw(row, header_map, 'price')
        if not self._is_blank_or_blacklisted(raw_price):
            contact.price = parse_price(raw_price)
            if contact.price is None:
                self._record_issue(issues, row_index, 'price', raw_price)

        raw_date = self._raw(row, header_map, 'last_sold_date')
        if not self._is_blank_or_blacklisted(raw_date):
            contact.last_sold_date = parse_spreadsheet_date(raw_date)
            if contact.last_sold_date is None:
                self._record_issue(issues, row_index, 'last_sold_date', raw_date)

        if not contact.phone_number and contact.owner_1_mobile:
            contact.phone_number = contact.owner_1_mobile
            contact.owner_1_mobile = ''

        if not contact.status and self.default_status:
            contact.status = self.default_status

        return NormalizationResult(contact=contact, issues=issues)

    @staticmethod
    def _raw(row: Mapping[str, Any], header_map: Mapping[str, str], name: str):
        header = header_map.get(name)
        if header is None:
            return None
        return row.get(header)

    @staticmethod
    def _string_value(value) -> str:
        text = cell_to_text(value)
        return '' if text in BLACKLIST_TOKENS else text

    @staticmethod
    def _is_blank_or_blacklisted(value) -> bool:
        text = cell_to_text(value)
        return not text or text in BLACKLIST_TOKENS

    def _record_issue(self, issues: List[FieldIssue], row_index: int, name: str, raw_value) -> None:
        logger.debug(f"Row {row_index}: could not parse {name} value {raw_value!r}")
        if self.strict_parsing:
            issues.append(FieldIssue(row_index=row_index, field=name, raw_value=cell_to_text(raw_value)))
