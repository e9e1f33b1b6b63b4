from datetime import datetime
from pathlib import Path as FilePath
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Path, Query, Request, UploadFile, status
from fastapi.responses import Response

from student_records.config.settings import settings
from student_records.schemas.student_schemas import (
    ImportStudentsRequest,
    StudentCreateRequest,
    StudentUpdateRequest,
)
from student_records.services.bulk_import_exporter import (
    MEDIA_TYPES,
    BulkImportExporter,
    format_from_path,
    get_bulk_import_exporter,
    resolve_format,
)
from student_records.services.student_service import (
    StudentService,
    get_student_service,
    to_response,
)
from student_records.utils.errors import ImportFileError
from student_records.utils.logging import get_logger
from student_records.utils.responses import ResponseBuilder

logger = get_logger()

students_router = APIRouter()


def _import_response(request: Request, report):
    data = report.model_dump(mode="json", by_alias=True)
    imported, rejected = len(report.imported), len(report.errors)

    if rejected and not imported:
        return ResponseBuilder.error(
            request=request,
            message=f"Import failed: all {rejected} row(s) were rejected",
            error_code="IMPORT_FAILED",
            data=data,
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if rejected:
        return ResponseBuilder.warning(
            request=request,
            data=data,
            message=f"Imported {imported} student(s). {rejected} row(s) rejected.",
            warnings=[f"Row {e.row}: {e.reason}" for e in report.errors],
        )

    return ResponseBuilder.success(
        request=request,
        data=data,
        message=f"Successfully imported {imported} student(s)",
    )


@students_router.get(
    "/",
    summary="List students",
    description="Paginated list of all students ordered by student ID",
)
async def list_students(
    request: Request,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[
        int, Query(ge=1, le=100, alias="perPage")
    ] = settings.DEFAULT_PAGE_SIZE,
    student_service: StudentService = Depends(get_student_service),
):
    students, total = await student_service.list_students(page, per_page)
    return ResponseBuilder.paginated(
        request=request,
        data=[to_response(s) for s in students],
        page=page,
        per_page=per_page,
        total=total,
        message=f"Retrieved {len(students)} student(s)",
    )


@students_router.get(
    "/search",
    summary="Search students",
    description="Exact student ID and/or case-insensitive name or faculty match",
)
async def search_students(
    request: Request,
    student_id: Annotated[Optional[str], Query(alias="studentId")] = None,
    full_name: Annotated[Optional[str], Query(alias="fullName")] = None,
    faculty: Annotated[Optional[str], Query()] = None,
    student_service: StudentService = Depends(get_student_service),
):
    students = await student_service.search_students(student_id, full_name, faculty)
    return ResponseBuilder.success(
        request=request,
        data=[to_response(s) for s in students],
        message=f"Found {len(students)} student(s)",
    )


@students_router.get(
    "/export",
    summary="Export students",
    description="Download every student as CSV or JSON. A copy is kept in the export directory.",
)
async def export_students(
    format: Annotated[str, Query(description="csv or json")],
    exporter: BulkImportExporter = Depends(get_bulk_import_exporter),
):
    data_format = resolve_format(format)
    students = await exporter.store.all()

    filename = f"students_{datetime.now().strftime('%Y%m%d%H%M%S')}.{data_format.value}"
    content = exporter.export_records(students, data_format)
    path = await exporter.save_export(
        content, FilePath(settings.EXPORT_DIR) / filename, data_format
    )

    return Response(
        content=content,
        media_type=MEDIA_TYPES[data_format],
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Export-Path": str(path),
        },
    )


@students_router.post(
    "/import",
    summary="Import students from parsed rows",
    description="Validate and upsert rows sent as JSON; rejected rows are reported, not fatal",
)
async def import_students(
    request: Request,
    data: ImportStudentsRequest,
    exporter: BulkImportExporter = Depends(get_bulk_import_exporter),
):
    report = await exporter.import_rows(data.data, data.format)
    return _import_response(request, report)


@students_router.post(
    "/import/file",
    summary="Import students from an uploaded file",
    description="Upload a .csv or .json file; the format defaults to the file extension",
)
async def import_students_file(
    request: Request,
    file: Annotated[UploadFile, File(description="CSV or JSON file")],
    format: Annotated[Optional[str], Query(description="csv or json")] = None,
    exporter: BulkImportExporter = Depends(get_bulk_import_exporter),
):
    data_format = (
        resolve_format(format) if format else format_from_path(file.filename or "")
    )

    try:
        content = (await file.read()).decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ImportFileError("Import file must be UTF-8 encoded")

    rows = exporter.parse_rows(content, data_format)
    logger.info(f"Parsed {len(rows)} row(s) from upload {file.filename}")

    report = await exporter.import_rows(rows, data_format)
    return _import_response(request, report)


@students_router.get("/{student_id}", summary="Get a student")
async def get_student(
    request: Request,
    student_id: Annotated[str, Path(description="Student ID")],
    student_service: StudentService = Depends(get_student_service),
):
    student = await student_service.get_student(student_id)
    return ResponseBuilder.success(
        request=request, data=to_response(student), message="Student retrieved"
    )


@students_router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create a student",
)
async def create_student(
    request: Request,
    payload: StudentCreateRequest,
    student_service: StudentService = Depends(get_student_service),
):
    student = await student_service.create_student(payload)
    return ResponseBuilder.success(
        request=request,
        data=to_response(student),
        message="Student created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@students_router.patch(
    "/{student_id}",
    summary="Update a student",
    description="Partial update. Status changes must follow the status transition rules.",
)
async def update_student(
    request: Request,
    payload: StudentUpdateRequest,
    student_id: Annotated[str, Path(description="Student ID")],
    student_service: StudentService = Depends(get_student_service),
):
    student = await student_service.update_student(student_id, payload)
    return ResponseBuilder.success(
        request=request,
        data=to_response(student),
        message="Student updated successfully",
    )


@students_router.delete("/{student_id}", summary="Delete a student")
async def delete_student(
    request: Request,
    student_id: Annotated[str, Path(description="Student ID")],
    student_service: StudentService = Depends(get_student_service),
):
    await student_service.delete_student(student_id)
    return ResponseBuilder.success(
        request=request,
        data={"studentId": student_id},
        message="Student deleted successfully",
    )
