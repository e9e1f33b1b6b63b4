from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError
import traceback
from .logging import get_logger
from .responses import ResponseBuilder

logger = get_logger()


class NotFoundError(Exception):
    """No student with the requested ID."""

    def __init__(
        self, message: str = "Resource not found", error_code: str = "NOT_FOUND"
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class StudentRecordError(Exception):
    """Base class for student record rule violations."""

    error_code = "RECORD_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    field: Optional[str] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FormatError(StudentRecordError):
    """A field failed its format or enum check."""

    error_code = "FORMAT_ERROR"

    def __init__(self, field: str, reason: str):
        super().__init__(reason)
        self.field = field
        self.reason = reason


class IllegalTransitionError(StudentRecordError):
    """The requested status change is not in the transition table."""

    error_code = "ILLEGAL_TRANSITION"

    def __init__(self, current_status: str, requested_status: str):
        super().__init__(
            f"illegal transition from {current_status} to {requested_status}"
        )
        self.field = "status"
        self.current_status = current_status
        self.requested_status = requested_status


class UnknownStatusError(StudentRecordError):
    """A stored status is missing from the status table (data integrity issue)."""

    error_code = "UNKNOWN_STATUS"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current_status: str):
        super().__init__(f"unknown current status: {current_status}")
        self.field = "status"
        self.current_status = current_status


class DuplicateKeyError(StudentRecordError):
    """Student ID or email already belongs to another record."""

    error_code = "DUPLICATE_KEY"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, field: str, value: str):
        super().__init__(f"A student with {field} '{value}' already exists")
        self.field = field
        self.value = value


class RowImportError(StudentRecordError):
    """Wraps the failure of a single row of a bulk import."""

    error_code = "ROW_IMPORT_ERROR"

    def __init__(self, row: int, cause: Exception):
        reason = getattr(cause, "message", None) or str(cause)
        super().__init__(f"Row {row}: {reason}")
        self.row = row
        self.cause = cause
        self.reason = reason
        self.field = getattr(cause, "field", None)
        self.kind = getattr(cause, "error_code", "STORE_ERROR")


class UnsupportedFormatError(StudentRecordError):
    """Import/export format other than csv or json."""

    error_code = "UNSUPPORTED_FORMAT"

    def __init__(self, file_format: Optional[str]):
        super().__init__(
            f"Unsupported format '{file_format}'. Supported formats: csv, json"
        )
        self.file_format = file_format


class ImportFileError(StudentRecordError):
    """An import file could not be read or parsed."""

    error_code = "IMPORT_FILE_ERROR"


def _log_and_respond(
    request: Request,
    log_message: str,
    message: str,
    error_code: str,
    status_code: int,
    errors: Optional[List[Dict[str, Any]]] = None,
    meta: Optional[Dict[str, Any]] = None,
    level: str = "error",
):
    logger.log(level.upper(), log_message)
    return ResponseBuilder.error(
        request=request,
        message=message,
        errors=errors,
        error_code=error_code,
        status_code=status_code,
        meta=meta,
    )


def setup_error_handlers(app: FastAPI):
    """Register the exception handlers that turn errors into response envelopes."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _log_and_respond(
            request,
            f"HTTP Exception: {exc.status_code} - {exc.detail}",
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            status_code=exc.status_code,
            meta={"http_status": exc.status_code},
        )

    # RequestValidationError covers malformed request bodies and query parameters
    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        formatted_errors = [
            {
                "field": " -> ".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        return _log_and_respond(
            request,
            f"Request Validation Error: {exc.errors()}",
            message="Request validation failed",
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            errors=formatted_errors,
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_exception_handler(
        request: Request, exc: ValidationError
    ):
        return _log_and_respond(
            request,
            f"Pydantic Validation Error: {exc.errors()}",
            message="Data validation failed",
            error_code="INTERNAL_VALIDATION_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(StudentRecordError)
    async def student_record_exception_handler(
        request: Request, exc: StudentRecordError
    ):
        errors = [{"field": exc.field, "message": exc.message}] if exc.field else None
        return _log_and_respond(
            request,
            f"Student Record Error [{exc.error_code}]: {exc.message}",
            message=exc.message,
            error_code=exc.error_code,
            status_code=exc.status_code,
            errors=errors,
            level="warning",
        )

    @app.exception_handler(NotFoundError)
    async def not_found_exception_handler(request: Request, exc: NotFoundError):
        return _log_and_respond(
            request,
            f"Not Found Error: {exc.message}",
            message=exc.message,
            error_code=exc.error_code,
            status_code=status.HTTP_404_NOT_FOUND,
            level="warning",
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        # Database internals stay in the log
        return _log_and_respond(
            request,
            f"SQLAlchemy Error: {exc}",
            message="A database error occurred",
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _log_and_respond(
            request,
            f"Value Error: {exc}",
            message=str(exc),
            error_code="VALUE_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Traceback: {traceback.format_exc()}")
        return _log_and_respond(
            request,
            f"Unhandled Exception: {exc}",
            message="An internal server error occurred",
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
