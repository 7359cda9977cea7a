"""
Celery tasks for contact import processing.

Runs a spreadsheet import outside the request cycle. The task body is the
same ContactImportService.import_bytes call the HTTP route makes; a
LEDGER_WRITE_FAILURE (for example a concurrent import of the same suburb
winning the identity_hash race) is retried, since re-running a file only
inserts what is still missing.
"""

import base64
import logging
from typing import Any, Dict, Optional, Union

from celery import current_app as celery_app
from flask import current_app, has_app_context

from services.enums import ImportErrorCode

logger = logging.getLogger(__name__)

RETRYABLE_CODES = {ImportErrorCode.LEDGER_WRITE_FAILURE.value}


def _result_payload(result) -> Dict[str, Any]:
    if result.is_success:
        outcome = result.data
        return {
            'status': 'success',
            'suburb': outcome.suburb,
            'contact_import_id': outcome.contact_import_id,
            'summary': outcome.to_summary(),
        }
    return {
        'status': 'error',
        'code': result.error_code,
        'error': result.error,
        'details': result.metadata,
    }


def _run_import(task, file_content: bytes, filename: str, suburb: str,
                imported_by: Optional[str], strict_parsing: Optional[bool]):
    task.update_state(
        state='PROGRESS',
        meta={'status': f'Importing {filename} into {suburb}...'}
    )
    service = current_app.services.get('contact_import')
    return service.import_bytes(
        file_content,
        filename,
        suburb,
        imported_by=imported_by,
        strict_parsing=strict_parsing,
    )


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=30
)
def process_contact_import(self, file_content: Union[bytes, str], filename: str, suburb: str,
                           imported_by: str = None, strict_parsing: bool = None) -> Dict[str, Any]:
    """
    Import a contact spreadsheet asynchronously.

    Args:
        file_content: The .csv/.xlsx file content as bytes or base64 text
        filename: Original filename for format detection
        suburb: Suburb the contacts belong to
        imported_by: User identifier who initiated the import
        strict_parsing: Report unparseable dates and prices as warnings

    Returns:
        Dict with status and either the import summary or the failure code
    """
    logger.info(f"Starting background contact import of {filename} for {suburb}")

    # Queued from HTTP as base64 text so the message stays JSON serializable
    if isinstance(file_content, str):
        file_content = base64.b64decode(file_content)

    if has_app_context():
        result = _run_import(self, file_content, filename, suburb, imported_by, strict_parsing)
    else:
        from app import create_app
        app = create_app()
        with app.app_context():
            result = _run_import(self, file_content, filename, suburb, imported_by, strict_parsing)

    if result.is_failure and result.error_code in RETRYABLE_CODES:
        logger.warning(f"Contact import of {filename} for {suburb} failed to write, retrying: {result.error}")
        raise self.retry(exc=RuntimeError(result.error))

    payload = _result_payload(result)
    logger.info(f"Background contact import of {filename} for {suburb} finished: {payload['status']}")
    return payload
