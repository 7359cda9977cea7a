"""
StreetResolutionService - resolves spreadsheet street names against the property catalog

Matching order for a row's street name within one suburb:
1. exact member of the canonical street set
2. first canonical street (catalog order) that contains the name, or is
   contained in it, ignoring case
3. first canonical street, flagged as unmatched (forced match)
4. no canonical streets at all: row dropped, flagged as unmatched

A blank street name skips step 2. Taken literally the empty string is
contained in every street, which would report it as a true match; instead it
gets the forced match of step 3 so the row shows up among unmatched streets.

Missing street numbers are assigned round-robin from the street's known
numbers using the row's position in the file.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class CanonicalStreetIndex:
    """Known streets of one suburb and, per street, its known numbers (in catalog order)"""
    suburb: str
    street_names: List[str] = field(default_factory=list)
    street_numbers_by_street: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_pairs(cls, suburb: str, pairs: Iterable[Tuple[Optional[str], Optional[str]]]) -> 'CanonicalStreetIndex':
        """Build an index from (street_name, street_number) pairs

        Blank street names are ignored; blank numbers register the street only.
        """
        index = cls(suburb=suburb)
        for street_name, street_number in pairs:
            name = (street_name or '').strip()
            if not name:
                continue
            if name not in index.street_numbers_by_street:
                index.street_names.append(name)
                index.street_numbers_by_street[name] = []
            number = '' if street_number is None else str(street_number).strip()
            if number:
                index.street_numbers_by_street[name].append(number)
        return index

    def __contains__(self, street_name: str) -> bool:
        return street_name in self.street_numbers_by_street

    def __len__(self) -> int:
        return len(self.street_names)

    def numbers_for(self, street_name: str) -> List[str]:
        return self.street_numbers_by_street.get(street_name, [])


@dataclass
class StreetResolution:
    street_name: Optional[str]
    street_number: Optional[str]
    was_unmatched: bool = False
    dropped: bool = False
    original_street_name: str = ''


class StreetResolutionService:
    """Resolves raw street names and numbers for one suburb's index"""

    def resolve(self, street_name: Optional[str], street_number: Optional[str],
                row_index: int, index: CanonicalStreetIndex) -> StreetResolution:
        """Resolve a row's street

        Args:
            street_name: Raw street name from the row
            street_number: Raw street number from the row (may be blank)
            row_index: Position of the row in the current file
            index: Canonical streets of the suburb being imported

        Returns:
            StreetResolution; ``dropped`` rows carry no street and must not be accepted
        """
        candidate = (street_name or '').strip()

        resolved, was_unmatched = self.match_street_name(candidate, index)
        if resolved is None:
            logger.debug(f"No canonical streets for {index.suburb}; dropping row {row_index} ('{candidate}')")
            return StreetResolution(
                street_name=None,
                street_number=None,
                was_unmatched=True,
                dropped=True,
                original_street_name=candidate,
            )

        if was_unmatched:
            logger.debug(f"Row {row_index}: '{candidate}' not found in {index.suburb}, using '{resolved}'")

        return StreetResolution(
            street_name=resolved,
            street_number=self.assign_street_number(street_number, resolved, row_index, index),
            was_unmatched=was_unmatched,
            original_street_name=candidate,
        )

    @staticmethod
    def match_street_name(candidate: str, index: CanonicalStreetIndex) -> Tuple[Optional[str], bool]:
        """Return (canonical street, was_unmatched); (None, True) when the index is empty"""
        if candidate and candidate in index:
            return candidate, False

        if candidate:
            lowered = candidate.lower()
            for canonical in index.street_names:
                canonical_lower = canonical.lower()
                if lowered in canonical_lower or canonical_lower in lowered:
                    return canonical, False

        if index.street_names:
            return index.street_names[0], True

        return None, True

    @staticmethod
    def assign_street_number(street_number: Optional[str], street_name: str,
                             row_index: int, index: CanonicalStreetIndex) -> Optional[str]:
        supplied = (street_number or '').strip()
        if supplied:
            return supplied

        numbers = index.numbers_for(street_name)
        if not numbers:
            return None
        return numbers[row_index % len(numbers)]
