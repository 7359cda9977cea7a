"""
SpreadsheetReaderService - turns an uploaded .csv or .xlsx file into header + row records

Rows are dicts keyed by the original header strings. Fully blank rows are
skipped, like spreadsheet-to-JSON converters do. Only the first worksheet
of a workbook is read. CSV files that are not UTF-8 (Excel on Windows saves
cp1252) are decoded with the first encoding in CSV_ENCODINGS that accepts them, else latin-1.
"""

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from werkzeug.datastructures import FileStorage

from services.common.result import Result
from services.enums import ImportErrorCode

logger = logging.getLogger(__name__)

# Tried in order before falling back to latin-1, which maps every byte
CSV_ENCODINGS = ('utf-8-sig', 'cp1252')


@dataclass
class SpreadsheetData:
    header_row: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)
    filename: Optional[str] = None


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _xlsx_cell(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip()
    return value


class SpreadsheetReaderService:
    """Reads contact spreadsheets uploaded by users"""

    def __init__(self, allowed_extensions=('csv', 'xlsx')):
        self.allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)

    def read_upload(self, file: FileStorage) -> Result:
        """Read an uploaded file

        Args:
            file: Werkzeug upload

        Returns:
            Result with SpreadsheetData, or UNSUPPORTED_FILE failure
        """
        if file is None or not file.filename:
            return Result.failure("No file selected", code=ImportErrorCode.UNSUPPORTED_FILE.value)
        return self.read_bytes(file.read(), file.filename)

    def read_bytes(self, content: bytes, filename: str) -> Result:
        extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
        if extension not in self.allowed_extensions:
            return Result.failure(
                f"Unsupported file type '.{extension}'. Upload one of: "
                f"{', '.join('.' + ext for ext in self.allowed_extensions)}",
                code=ImportErrorCode.UNSUPPORTED_FILE.value
            )

        try:
            if extension == 'csv':
                data = self._read_csv(content)
            else:
                data = self._read_xlsx(content)
        except (csv.Error, InvalidFileException, zipfile.BadZipFile,
                KeyError, ValueError, OSError) as e:
            # openpyxl surfaces corrupt archives as KeyError/OSError/ValueError
            logger.warning(f"Could not read spreadsheet {filename}: {e}")
            return Result.failure(
                f"Could not read {filename}: {e}",
                code=ImportErrorCode.UNSUPPORTED_FILE.value
            )

        data.filename = filename
        logger.info(f"Read {len(data.rows)} rows with {len(data.header_row)} columns from {filename}")
        return Result.success(data)

    def _read_csv(self, content: bytes) -> SpreadsheetData:
        text = self._decode_csv(content) if isinstance(content, bytes) else content
        reader = csv.DictReader(io.StringIO(text))
        header_row = [name for name in (reader.fieldnames or []) if name is not None]

        rows = []
        for row in reader:
            record = {header: row.get(header) for header in header_row}
            if all(_is_blank(value) for value in record.values()):
                continue
            rows.append(record)
        return SpreadsheetData(header_row=header_row, rows=rows)

    @staticmethod
    def _decode_csv(content: bytes) -> str:
        for encoding in CSV_ENCODINGS:
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                logger.info(f"CSV is not {encoding}, trying the next encoding")
        return content.decode('latin-1')

    def _read_xlsx(self, content: bytes) -> SpreadsheetData:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        try:
            sheet = workbook.worksheets[0]
            row_iter = sheet.iter_rows(values_only=True)
            first_row = next(row_iter, None)
            if first_row is None:
                return SpreadsheetData()

            columns = [
                (position, str(value).strip())
                for position, value in enumerate(first_row)
                if not _is_blank(value)
            ]
            header_row = [name for _, name in columns]

            rows = []
            for values in row_iter:
                record = {
                    name: _xlsx_cell(values[position]) if position < len(values) else None
                    for position, name in columns
                }
                if all(_is_blank(value) for value in record.values()):
                    continue
                rows.append(record)
            return SpreadsheetData(header_row=header_row, rows=rows)
        finally:
            workbook.close()
