"""
ContactImportService - bulk reconciliation and import of street contacts

Pipeline per row, in file order:
    HeaderMappingService (map built once per run)
    -> FieldNormalizationService
    -> skip rows without owners
    -> StreetResolutionService
    -> DuplicateDetectionService
    -> accepted / duplicates / unmatched_streets

Rows are folded sequentially because duplicate detection remembers the keys
accepted earlier in the same file. Accepted contacts are written with one
bulk insert after the loop; if nothing qualifies no insert is attempted.

The canonical street index and the ledger keys are snapshots passed in by
the caller (import_contacts) or read once from the repositories
(import_for_suburb).
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from logging_config import import_audit_logger
from repositories.contact_repository import ContactRepository
from repositories.property_repository import PropertyRepository
from repositories.contact_import_repository import ContactImportRepository
from services.common.result import Result
from services.enums import ImportErrorCode, ImportStatus
from services.header_mapping_service import HeaderMappingService
from services.field_normalization_service import (
    FieldIssue,
    FieldNormalizationService,
    NormalizedContact,
)
from services.street_resolution_service import CanonicalStreetIndex, StreetResolutionService
from services.duplicate_detection_service import (
    DuplicateDetectionService,
    IdentityKey,
    identity_hash,
    identity_key,
)
from services.spreadsheet_reader_service import SpreadsheetReaderService

logger = logging.getLogger(__name__)

EMPTY_INPUT_MESSAGE = "No data found in the file"


@dataclass
class ImportOutcome:
    """Partition of one file's rows"""
    suburb: str
    total_rows: int = 0
    accepted: List[NormalizedContact] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    unmatched_streets: List[str] = field(default_factory=list)
    skipped_rows: List[int] = field(default_factory=list)
    warnings: List[FieldIssue] = field(default_factory=list)
    inserted: List[Any] = field(default_factory=list)
    contact_import_id: Optional[int] = None

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched_streets)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_rows)

    def counts(self) -> Dict[str, int]:
        return {
            'accepted_count': self.accepted_count,
            'duplicate_count': self.duplicate_count,
            'unmatched_count': self.unmatched_count,
            'skipped_count': self.skipped_count,
        }

    def to_summary(self) -> Dict[str, Any]:
        """Caller-facing summary of the run"""
        summary = self.counts()
        summary.update({
            'duplicates': list(self.duplicates),
            'unmatched_streets': list(self.unmatched_streets),
            'warnings': [issue.to_dict() for issue in self.warnings],
        })
        return summary


def _preview(items: Sequence[str], limit: int) -> str:
    shown = '; '.join(items[:limit])
    if len(items) > limit:
        shown += f" (and {len(items) - limit} more)"
    return shown


class ContactImportService:
    """Imports spreadsheets of owner contacts into a suburb's contact ledger"""

    def __init__(self,
                 contact_repository: ContactRepository,
                 property_repository: PropertyRepository,
                 contact_import_repository: Optional[ContactImportRepository] = None,
                 header_mapping_service: Optional[HeaderMappingService] = None,
                 street_resolution_service: Optional[StreetResolutionService] = None,
                 spreadsheet_reader: Optional[SpreadsheetReaderService] = None,
                 strict_parsing: bool = False,
                 default_status: Optional[str] = 'Inprogress',
                 preview_limit: int = 5):
        """Initialize service with repository dependencies

        Args:
            contact_repository: Contact ledger access
            property_repository: Property catalog access
            contact_import_repository: Optional audit trail of import runs
            header_mapping_service: Header aliasing (default aliases if omitted)
            street_resolution_service: Street matching
            spreadsheet_reader: Reader for uploaded files
            strict_parsing: Default for reporting unparseable dates/prices
            default_status: Status for rows that leave it blank
            preview_limit: Descriptions included in a NONE_QUALIFYING message
        """
        self.contact_repository = contact_repository
        self.property_repository = property_repository
        self.contact_import_repository = contact_import_repository
        self.header_mapping_service = header_mapping_service or HeaderMappingService()
        self.street_resolution_service = street_resolution_service or StreetResolutionService()
        self.spreadsheet_reader = spreadsheet_reader or SpreadsheetReaderService()
        self.strict_parsing = strict_parsing
        self.default_status = default_status
        self.preview_limit = preview_limit

    # ------------------------------------------------------------------
    # Pure pipeline
    # ------------------------------------------------------------------

    def classify_rows(self,
                      rows: Sequence[Mapping[str, Any]],
                      header_row: Sequence[str],
                      suburb: str,
                      street_index: CanonicalStreetIndex,
                      existing_keys: Iterable[IdentityKey] = (),
                      strict_parsing: Optional[bool] = None) -> ImportOutcome:
        """Partition rows into accepted / duplicate / unmatched without touching the ledger

        Args:
            rows: Row records keyed by original header
            header_row: Original header strings
            suburb: Suburb being imported; stamped on every accepted contact
            street_index: Canonical streets of that suburb
            existing_keys: Ledger identity keys of that suburb
            strict_parsing: Override the service default

        Returns:
            ImportOutcome
        """
        strict = self.strict_parsing if strict_parsing is None else strict_parsing
        header_map = self.header_mapping_service.build_header_map(header_row)
        normalizer = FieldNormalizationService(strict_parsing=strict, default_status=self.default_status)
        detector = DuplicateDetectionService(identity_key(*key) for key in existing_keys)

        outcome = ImportOutcome(suburb=suburb, total_rows=len(rows))
        for row_index, row in enumerate(rows):
            self._classify_row(outcome, row, row_index, header_map, normalizer, detector, street_index)

        logger.info(
            f"Classified {outcome.total_rows} rows for {suburb}: "
            f"{outcome.accepted_count} accepted, {outcome.duplicate_count} duplicate, "
            f"{outcome.unmatched_count} unmatched, {outcome.skipped_count} without owners"
        )
        return outcome

    def _classify_row(self, outcome: ImportOutcome, row: Mapping[str, Any], row_index: int,
                      header_map: Dict[str, str], normalizer: FieldNormalizationService,
                      detector: DuplicateDetectionService, street_index: CanonicalStreetIndex) -> None:
        normalized = normalizer.normalize_row(row or {}, header_map, row_index)
        outcome.warnings.extend(normalized.issues)
        contact = normalized.contact

        if not contact.has_owner:
            outcome.skipped_rows.append(row_index)
            return

        contact.suburb = outcome.suburb

        resolution = self.street_resolution_service.resolve(
            contact.street_name, contact.street_number, row_index, street_index
        )
        if resolution.was_unmatched:
            outcome.unmatched_streets.append(resolution.original_street_name)
        if resolution.dropped:
            return

        contact.street_name = resolution.street_name
        contact.street_number = resolution.street_number

        check = detector.check(contact)
        if check.is_duplicate:
            outcome.duplicates.append(check.description)
        else:
            outcome.accepted.append(contact)

    # ------------------------------------------------------------------
    # Import operations
    # ------------------------------------------------------------------

    def import_contacts(self,
                        rows: Sequence[Mapping[str, Any]],
                        header_row: Sequence[str],
                        suburb: str,
                        street_index: CanonicalStreetIndex,
                        existing_keys: Iterable[IdentityKey] = (),
                        strict_parsing: Optional[bool] = None,
                        filename: Optional[str] = None,
                        imported_by: Optional[str] = None) -> Result:
        """Classify rows and bulk insert the accepted contacts

        Args:
            rows: Row records keyed by original header
            header_row: Original header strings
            suburb: Suburb being imported
            street_index: Canonical street snapshot for the suburb
            existing_keys: Ledger key snapshot for the suburb
            strict_parsing: Override the service default
            filename: Source file name for the audit trail
            imported_by: User running the import

        Returns:
            Result with the ImportOutcome, or a failure coded
            EMPTY_INPUT / NONE_QUALIFYING / LEDGER_WRITE_FAILURE / INVALID_SUBURB
        """
        started = time.monotonic()
        suburb = (suburb or '').strip()

        if not suburb:
            return Result.failure("Please select a suburb before importing",
                                  code=ImportErrorCode.INVALID_SUBURB.value)

        if not rows:
            return self._fail(ImportErrorCode.EMPTY_INPUT, EMPTY_INPUT_MESSAGE,
                              ImportOutcome(suburb=suburb), started, filename, imported_by)

        outcome = self.classify_rows(rows, header_row, suburb, street_index, existing_keys, strict_parsing)

        if not outcome.accepted:
            return self._fail(ImportErrorCode.NONE_QUALIFYING, self._none_qualifying_message(outcome),
                              outcome, started, filename, imported_by)

        outcome.contact_import_id = self._open_audit(outcome, filename, imported_by)
        records = []
        for contact in outcome.accepted:
            record = contact.to_record()
            record['identity_hash'] = identity_hash(identity_key(
                contact.owner_1, contact.owner_2, contact.street_number, contact.street_name, contact.suburb
            ))
            record['contact_import_id'] = outcome.contact_import_id
            records.append(record)

        try:
            outcome.inserted = self.contact_repository.bulk_create(records)
        except SQLAlchemyError as e:
            message = (
                f"Failed to save {len(records)} contacts, nothing was imported: {e}. "
                "Re-run the import with the same file once the problem is resolved."
            )
            return self._fail(ImportErrorCode.LEDGER_WRITE_FAILURE, message, outcome,
                              started, filename, imported_by)

        self._close_audit(outcome, ImportStatus.COMPLETED)
        import_audit_logger.log_import_completed(
            suburb, outcome.to_summary(), self._elapsed_ms(started), filename=filename
        )
        return Result.success(outcome, metadata={'contact_import_id': outcome.contact_import_id})

    def import_for_suburb(self,
                          rows: Sequence[Mapping[str, Any]],
                          header_row: Sequence[str],
                          suburb: str,
                          strict_parsing: Optional[bool] = None,
                          filename: Optional[str] = None,
                          imported_by: Optional[str] = None) -> Result:
        """Read the suburb's catalog and ledger snapshots, then import

        Both reads happen once, before any row is processed.
        """
        suburb = (suburb or '').strip()
        if not suburb:
            return Result.failure("Please select a suburb before importing",
                                  code=ImportErrorCode.INVALID_SUBURB.value)
        if not rows:
            return self.import_contacts(rows, header_row, suburb, CanonicalStreetIndex(suburb=suburb),
                                        filename=filename, imported_by=imported_by)

        try:
            street_index = CanonicalStreetIndex.from_pairs(
                suburb, self.property_repository.get_street_pairs(suburb)
            )
            existing_keys = self.contact_repository.get_identity_rows(suburb)
        except SQLAlchemyError as e:
            logger.error(f"Could not load reference data for {suburb}: {e}")
            return Result.failure(f"Could not load streets and contacts for {suburb}: {e}",
                                  code=ImportErrorCode.CATALOG_READ_FAILURE.value)

        logger.info(f"Loaded {len(street_index)} streets and {len(existing_keys)} existing contacts for {suburb}")
        return self.import_contacts(rows, header_row, suburb, street_index, existing_keys,
                                    strict_parsing=strict_parsing, filename=filename,
                                    imported_by=imported_by)

    def import_file(self, file, suburb: str, imported_by: Optional[str] = None,
                    strict_parsing: Optional[bool] = None) -> Result:
        """Import an uploaded .csv/.xlsx file

        Args:
            file: Werkzeug FileStorage
            suburb: Suburb being imported
            imported_by: User running the import
            strict_parsing: Override the service default
        """
        read_result = self.spreadsheet_reader.read_upload(file)
        if read_result.is_failure:
            return read_result

        data = read_result.data
        return self.import_for_suburb(data.rows, data.header_row, suburb,
                                      strict_parsing=strict_parsing, filename=data.filename,
                                      imported_by=imported_by)

    def import_bytes(self, content: bytes, filename: str, suburb: str,
                     imported_by: Optional[str] = None,
                     strict_parsing: Optional[bool] = None) -> Result:
        """Import raw file content (used by the background task)"""
        read_result = self.spreadsheet_reader.read_bytes(content, filename)
        if read_result.is_failure:
            return read_result

        data = read_result.data
        return self.import_for_suburb(data.rows, data.header_row, suburb,
                                      strict_parsing=strict_parsing, filename=filename,
                                      imported_by=imported_by)

    # ------------------------------------------------------------------
    # Single contacts
    # ------------------------------------------------------------------

    def add_contact(self, data: Mapping[str, Any], suburb: str) -> Result:
        """Add one contact on an existing street of the suburb

        Args:
            data: Contact fields (canonical names or known aliases)
            suburb: Suburb the contact belongs to

        Returns:
            Result with the inserted Contact
        """
        suburb = (suburb or '').strip()
        if not suburb:
            return Result.failure("Suburb is required", code=ImportErrorCode.INVALID_SUBURB.value)

        header_map = self.header_mapping_service.build_header_map(list(data.keys()))
        normalizer = FieldNormalizationService(default_status=self.default_status)
        contact = normalizer.normalize_row(data, header_map).contact

        if not contact.has_owner:
            return Result.failure("At least one owner name is required",
                                  code=ImportErrorCode.MISSING_OWNER.value)

        try:
            street_index = CanonicalStreetIndex.from_pairs(
                suburb, self.property_repository.get_street_pairs(suburb)
            )
            if contact.street_name not in street_index:
                return Result.failure(
                    f"Street '{contact.street_name}' is not a known street in {suburb}",
                    code=ImportErrorCode.STREET_NOT_FOUND.value,
                    metadata={'streets': list(street_index.street_names)}
                )

            contact.suburb = suburb
            key = identity_key(contact.owner_1, contact.owner_2, contact.street_number,
                               contact.street_name, contact.suburb)
            detector = DuplicateDetectionService.from_ledger_rows(
                self.contact_repository.get_identity_rows(suburb)
            )
            if detector.is_known(key):
                return Result.failure(
                    "Contact already exists",
                    code=ImportErrorCode.DUPLICATE_CONTACT.value
                )

            record = contact.to_record()
            record['identity_hash'] = identity_hash(key)
            inserted = self.contact_repository.bulk_create([record])
        except SQLAlchemyError as e:
            logger.error(f"Failed to add contact in {suburb}: {e}")
            return Result.failure(f"Failed to add contact: {e}",
                                  code=ImportErrorCode.LEDGER_WRITE_FAILURE.value)

        logger.info(f"Added contact {inserted[0].id} at {contact.street_name}, {suburb}")
        return Result.success(inserted[0])

    def list_contacts(self, suburb: str, street_name: Optional[str] = None) -> Result:
        suburb = (suburb or '').strip()
        if not suburb:
            return Result.failure("Suburb is required to fetch contacts",
                                  code=ImportErrorCode.INVALID_SUBURB.value)
        return Result.success(self.contact_repository.find_by_suburb(suburb, street_name=street_name))

    def get_import_history(self, suburb: Optional[str] = None, limit: int = 10) -> List[Any]:
        if not self.contact_import_repository:
            return []
        return self.contact_import_repository.get_recent(suburb=suburb, limit=limit)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _none_qualifying_message(self, outcome: ImportOutcome) -> str:
        message = (
            f"No new contacts to import: {outcome.duplicate_count} duplicate(s), "
            f"{outcome.unmatched_count} unmatched street(s), "
            f"{outcome.skipped_count} row(s) without owners."
        )
        if outcome.duplicates:
            message += f" Duplicates: {_preview(outcome.duplicates, self.preview_limit)}."
        if outcome.unmatched_streets:
            message += f" Unmatched streets: {_preview(outcome.unmatched_streets, self.preview_limit)}."
        return message

    def _failure_metadata(self, outcome: ImportOutcome) -> Dict[str, Any]:
        metadata = outcome.counts()
        metadata.update({
            'duplicates': outcome.duplicates[:self.preview_limit],
            'unmatched_streets': outcome.unmatched_streets[:self.preview_limit],
            'warnings': [issue.to_dict() for issue in outcome.warnings],
        })
        if outcome.contact_import_id is not None:
            metadata['contact_import_id'] = outcome.contact_import_id
        return metadata

    def _fail(self, code: ImportErrorCode, message: str, outcome: ImportOutcome, started: float,
              filename: Optional[str], imported_by: Optional[str]) -> Result:
        if outcome.contact_import_id is None:
            outcome.contact_import_id = self._open_audit(outcome, filename, imported_by)
        self._close_audit(outcome, ImportStatus.FAILED, code=code.value, message=message)
        import_audit_logger.log_import_failed(
            outcome.suburb, code.value, message, self._elapsed_ms(started), filename=filename
        )
        return Result.failure(message, code=code.value, metadata=self._failure_metadata(outcome))

    def _open_audit(self, outcome: ImportOutcome, filename: Optional[str],
                    imported_by: Optional[str]) -> Optional[int]:
        if not self.contact_import_repository:
            return None
        try:
            record = self.contact_import_repository.start_import(
                outcome.suburb, filename, imported_by, outcome.total_rows
            )
            return record.id
        except SQLAlchemyError as e:
            logger.warning(f"Could not record contact import for {outcome.suburb}: {e}")
            return None

    def _close_audit(self, outcome: ImportOutcome, status: ImportStatus,
                     code: Optional[str] = None, message: Optional[str] = None) -> None:
        if not self.contact_import_repository or outcome.contact_import_id is None:
            return
        try:
            self.contact_import_repository.finish_import(
                outcome.contact_import_id,
                status,
                outcome.counts(),
                error_code=code,
                error_message=message,
                import_metadata={
                    'duplicates': outcome.duplicates[:self.preview_limit],
                    'unmatched_streets': outcome.unmatched_streets[:self.preview_limit],
                    'warnings': [issue.to_dict() for issue in outcome.warnings],
                },
            )
        except SQLAlchemyError as e:
            logger.warning(f"Could not update contact import {outcome.contact_import_id}: {e}")

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.monotonic() - started) * 1000, 2)
