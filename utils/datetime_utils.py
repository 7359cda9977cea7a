"""
Date and time helpers for the contact ledger.

Ledger timestamps are timezone-aware UTC datetimes. Spreadsheet exports carry
dates in several shapes (ISO strings, day-first strings, Excel serial numbers);
the helpers here turn each of those into a calendar date or None.
"""

import math
import re
from datetime import date, datetime, timezone, timedelta
from typing import Optional, Union

# Day zero of the legacy spreadsheet serial scheme
EXCEL_SERIAL_BASE = date(1900, 1, 1)

# Serial 60 is the phantom 1900-02-29 of the legacy scheme
EXCEL_PHANTOM_LEAP_SERIAL = 59

_DATETIME_PATTERN = re.compile(r'^(\d{4}-\d{2}-\d{2}) \d{2}:\d{2}:\d{2}$')
_DAY_FIRST_PATTERN = re.compile(r'^(\d{2})-(\d{2})-(\d{4})$')
_ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def utc_now() -> datetime:
    """
    Get the current UTC time as a timezone-aware datetime object.

    Returns:
        datetime: Current UTC time with timezone information
    """
    return datetime.now(timezone.utc)


def parse_calendar_date(value: str) -> Optional[date]:
    """Parse a YYYY-MM-DD string, returning None if it is not a real calendar date"""
    if not _ISO_DATE_PATTERN.match(value):
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


def excel_serial_to_date(serial: Union[int, float]) -> Optional[date]:
    """
    Convert a spreadsheet serial number to a calendar date.

    Serials above 59 are shifted back one day to step over the phantom leap
    day, then the remaining offset is counted from 1900-01-01 less two days.
    The same offset is applied to every serial so results stay consistent
    with ledger data imported previously.

    Args:
        serial: Serial day number; fractional parts (time of day) are dropped

    Returns:
        date or None if the serial is out of the representable range
    """
    days = int(serial)
    if days > EXCEL_PHANTOM_LEAP_SERIAL:
        days -= 1
    try:
        return EXCEL_SERIAL_BASE + timedelta(days=days - 2)
    except OverflowError:
        return None


def parse_spreadsheet_date(value) -> Optional[str]:
    """
    Coerce a spreadsheet cell to an ISO date string (YYYY-MM-DD).

    Accepted shapes, in priority order:
        1. 'YYYY-MM-DD HH:MM:SS' (date portion kept)
        2. 'DD-MM-YYYY'
        3. 'YYYY-MM-DD'
        4. Excel serial, either a number or a numeric string

    date and datetime objects handed over by spreadsheet readers are used as-is.

    Args:
        value: Raw cell value

    Returns:
        ISO date string, or None when the value matches none of the shapes
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, (int, float)):
        parsed = excel_serial_to_date(value) if math.isfinite(value) else None
        return parsed.isoformat() if parsed else None

    text = str(value).strip()
    if not text:
        return None

    match = _DATETIME_PATTERN.match(text)
    if match:
        parsed = parse_calendar_date(match.group(1))
        return parsed.isoformat() if parsed else None

    match = _DAY_FIRST_PATTERN.match(text)
    if match:
        day, month, year = match.groups()
        parsed = parse_calendar_date(f'{year}-{month}-{day}')
        return parsed.isoformat() if parsed else None

    parsed = parse_calendar_date(text)
    if parsed:
        return parsed.isoformat()

    try:
        serial = float(text)
    except ValueError:
        return None
    if not math.isfinite(serial):
        return None
    converted = excel_serial_to_date(serial)
    return converted.isoformat() if converted else None
