import csv
import io
import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Union

from fastapi import Depends
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

from student_records.config.settings import settings
from student_records.db.models import Student
from student_records.schemas.student_schemas import (
    REQUIRED_FIELDS,
    ImportReport,
    RowErrorItem,
    StudentCreateRequest,
    StudentResponse,
    StudentUpdateRequest,
)
from student_records.services.record_validator import (
    format_error_from_validation,
    validate_record,
)
from student_records.services.status_transition import check_transition
from student_records.services.student_store import StudentStore, get_student_store
from student_records.utils.errors import (
    FormatError,
    ImportFileError,
    NotFoundError,
    RowImportError,
    StudentRecordError,
    UnsupportedFormatError,
)
from student_records.utils.file_io import PathLike, read_text, write_text
from student_records.utils.logging import get_logger

logger = get_logger()


class DataFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


MEDIA_TYPES = {
    DataFormat.CSV: "text/csv; charset=utf-8",
    DataFormat.JSON: "application/json",
}

# CSV header / JSON keys on export, in record field order
EXPORT_FIELDS: List[str] = [to_camel(name) for name in StudentResponse.model_fields]

# Import accepts both the camelCase export keys and snake_case field names
FIELD_BY_KEY: Dict[str, str] = {
    **{name: name for name in REQUIRED_FIELDS},
    **{to_camel(name): name for name in REQUIRED_FIELDS},
}

# Extended JSON wrappers written by document-database exports
EXTENDED_JSON_KEYS = ("$date", "$oid", "$numberLong", "$numberInt")


def resolve_format(value: Union[str, DataFormat, None]) -> DataFormat:
    """
    Raises:
        UnsupportedFormatError: anything other than csv or json
    """
    if isinstance(value, DataFormat):
        return value
    try:
        return DataFormat(str(value).strip().lower().lstrip("."))
    except ValueError:
        raise UnsupportedFormatError(value)


def format_from_path(path: PathLike) -> DataFormat:
    return resolve_format(Path(path).suffix)


def _unwrap(value: Any) -> Any:
    if isinstance(value, dict) and len(value) == 1:
        key = next(iter(value))
        if key in EXTENDED_JSON_KEYS:
            return value[key]
    return value


def _to_text(value: Any) -> Any:
    """Raw cell/JSON value -> stripped string; empty values become None"""
    value = _unwrap(value)
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


def row_to_candidate(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Map an import row onto record fields; unknown keys and empty values are dropped"""
    candidate: Dict[str, Any] = {}
    for key, raw in row.items():
        if not isinstance(key, str):
            continue
        field = FIELD_BY_KEY.get(key.strip())
        if field is None:
            continue
        value = _to_text(raw)
        if value is not None:
            candidate[field] = value
    return candidate


class BulkImportExporter:
    """Bulk ingestion of student rows from CSV/JSON and export of records to CSV/JSON"""

    def __init__(self, store: StudentStore, allowed_email_domains=None, phone_pattern=None):
        self.store = store
        self.allowed_email_domains = (
            settings.ALLOWED_EMAIL_DOMAINS
            if allowed_email_domains is None
            else allowed_email_domains
        )
        self.phone_pattern = phone_pattern or settings.PHONE_NUMBER_PATTERN

    # Parsing
    @staticmethod
    def parse_rows(content: str, source_format: Union[str, DataFormat]) -> List[Dict[str, Any]]:
        """
        Parse file content into import rows.

        Raises:
            UnsupportedFormatError: unknown format
            ImportFileError: content is not a CSV table / a JSON array of objects
        """
        data_format = resolve_format(source_format)
        content = content.lstrip("\ufeff")

        if data_format is DataFormat.CSV:
            try:
                reader = csv.DictReader(io.StringIO(content))
                return [
                    {k: v for k, v in row.items() if k is not None}
                    for row in reader
                ]
            except csv.Error as e:
                raise ImportFileError(f"Invalid CSV content: {e}")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise ImportFileError(f"Invalid JSON content: {e.msg} (line {e.lineno})")

        if not isinstance(parsed, list) or not all(isinstance(i, dict) for i in parsed):
            raise ImportFileError("JSON import must be an array of student objects")
        return parsed

    # Import
    async def import_rows(
        self, rows: Sequence[Mapping[str, Any]], source_format: Union[str, DataFormat]
    ) -> ImportReport:
        """
        Validate and upsert every row; a failing row is reported and skipped.

        Rows are numbered from 1. A row whose student ID already exists is
        applied as a partial update, going through the status transition check
        when it changes the status.
        """
        data_format = resolve_format(source_format)
        report = ImportReport(format=data_format.value, total=len(rows))

        for index, row in enumerate(rows, start=1):
            try:
                student_id, created = await self._import_row(row)
            except (StudentRecordError, NotFoundError) as e:
                self._record_failure(report, RowImportError(index, e))
                continue
            except SQLAlchemyError as e:
                await self.store.rollback()
                self._record_failure(report, RowImportError(index, e))
                continue

            report.imported.append(student_id)
            if created:
                report.created += 1
            else:
                report.updated += 1

        logger.info(
            f"Imported {len(report.imported)}/{report.total} {data_format.value} rows "
            f"({report.created} created, {report.updated} updated, {len(report.errors)} rejected)"
        )
        return report

    @staticmethod
    def _record_failure(report: ImportReport, error: RowImportError) -> None:
        logger.warning(f"Import rejected row {error.row}: [{error.kind}] {error.reason}")
        report.errors.append(
            RowErrorItem(
                row=error.row,
                field=error.field,
                kind=error.kind,
                reason=error.reason,
            )
        )

    async def _import_row(self, row: Mapping[str, Any]):
        if not isinstance(row, Mapping):
            raise FormatError("record", "Row must be an object")

        candidate = row_to_candidate(row)

        format_error = validate_record(
            candidate,
            allowed_email_domains=self.allowed_email_domains,
            phone_pattern=self.phone_pattern,
        )
        if format_error is not None:
            raise format_error

        student_id = candidate.get("student_id")
        if not student_id:
            raise FormatError("student_id", "Missing required field 'studentId'")

        existing = await self.store.get(student_id)
        if existing is not None:
            try:
                update = StudentUpdateRequest.model_validate(
                    {k: v for k, v in candidate.items() if k != "student_id"}
                )
            except ValidationError as e:
                raise format_error_from_validation(e)

            changes = update.model_dump(exclude_unset=True)
            if "status" in changes:
                check_transition(existing.status, changes["status"])
            await self.store.update(student_id, changes)
            return student_id, False

        missing = [field for field in REQUIRED_FIELDS if field not in candidate]
        if missing:
            raise FormatError(missing[0], f"Missing required field '{to_camel(missing[0])}'")

        try:
            payload = StudentCreateRequest.model_validate(candidate)
        except ValidationError as e:
            raise format_error_from_validation(e)

        await self.store.create(payload.model_dump())
        return student_id, True

    async def import_file(
        self, path: PathLike, source_format: Union[str, DataFormat, None] = None
    ) -> ImportReport:
        """Read, parse and import a file; the format defaults to the file extension"""
        data_format = (
            format_from_path(path) if source_format is None else resolve_format(source_format)
        )
        try:
            content = await read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ImportFileError(f"Cannot read import file '{path}': {e}")

        return await self.import_rows(self.parse_rows(content, data_format), data_format)

    # Export
    @staticmethod
    def export_records(
        records: Iterable[Union[Student, StudentResponse, Mapping[str, Any]]],
        target_format: Union[str, DataFormat],
    ) -> str:
        """Render records as CSV (header row of field names) or an indented JSON array"""
        data_format = resolve_format(target_format)
        rows = [
            StudentResponse.model_validate(record).model_dump(mode="json", by_alias=True)
            for record in records
        ]

        if data_format is DataFormat.JSON:
            return json.dumps(rows, indent=2, ensure_ascii=False)

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS, lineterminator="\n")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: "" if v is None else v for k, v in row.items()})
        return buffer.getvalue()

    async def export_all(self, target_format: Union[str, DataFormat]) -> str:
        return self.export_records(await self.store.all(), target_format)

    async def export_to_file(
        self,
        records: Iterable[Union[Student, StudentResponse, Mapping[str, Any]]],
        path: PathLike,
        target_format: Union[str, DataFormat, None] = None,
    ) -> Path:
        data_format = (
            format_from_path(path) if target_format is None else resolve_format(target_format)
        )
        return await self.save_export(
            self.export_records(records, data_format), path, data_format
        )

    async def save_export(
        self, content: str, path: PathLike, target_format: Union[str, DataFormat]
    ) -> Path:
        """Write already rendered export content to `path`"""
        target = await write_text(path, content)
        logger.info(f"Exported students as {resolve_format(target_format).value} to {target}")
        return target


def get_bulk_import_exporter(
    store: StudentStore = Depends(get_student_store),
) -> BulkImportExporter:
    return BulkImportExporter(store)
