from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator

from student_records.db.models import Gender
from student_records.schemas.camel_base_model import CamelCaseBaseModel as BaseModel
from student_records.utils.datetime_utils import parse_date

GENDER_LABELS = {
    "nam": Gender.MALE,
    "male": Gender.MALE,
    "nữ": Gender.FEMALE,
    "nu": Gender.FEMALE,
    "female": Gender.FEMALE,
}

REQUIRED_FIELDS = (
    "student_id",
    "full_name",
    "date_of_birth",
    "gender",
    "faculty",
    "course",
    "program",
    "address",
    "email",
    "phone",
    "status",
)


def normalize_gender(value: Any) -> Any:
    if isinstance(value, str):
        gender = GENDER_LABELS.get(value.strip().lower())
        if gender is None:
            raise ValueError(f"Invalid gender '{value}'")
        return gender
    return value


def normalize_date(value: Any) -> Any:
    if value is None:
        return value
    return parse_date(value)


class StudentCreateRequest(BaseModel):
    """
    Payload for creating a student.

    Email, phone, faculty and status are kept as plain strings here; their
    format is checked by the record validator so the client gets a single
    field-level reason instead of a schema error.
    """

    student_id: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=200)
    date_of_birth: date
    gender: Gender
    faculty: str
    course: str = Field(..., min_length=1, max_length=50)
    program: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=500)
    email: str
    phone: str
    status: str

    @field_validator("gender", mode="before")
    @classmethod
    def coerce_gender(cls, value: Any) -> Any:
        return normalize_gender(value)

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def coerce_date_of_birth(cls, value: Any) -> Any:
        return normalize_date(value)


class StudentUpdateRequest(BaseModel):
    """Partial update; only the fields sent by the client are applied"""

    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    faculty: Optional[str] = None
    course: Optional[str] = Field(None, min_length=1, max_length=50)
    program: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None

    @field_validator("gender", mode="before")
    @classmethod
    def coerce_gender(cls, value: Any) -> Any:
        return normalize_gender(value)

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def coerce_date_of_birth(cls, value: Any) -> Any:
        return normalize_date(value)


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: str
    full_name: str
    date_of_birth: date
    gender: str
    faculty: str
    course: str
    program: str
    address: str
    email: str
    phone: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ImportStudentsRequest(BaseModel):
    """Rows already parsed by the client, as sent by the import screen"""

    format: str = Field(..., description="Source format of the rows: csv or json")
    data: List[Dict[str, Any]] = Field(
        ..., min_length=1, description="Rows to import, one object per student"
    )


class RowErrorItem(BaseModel):
    row: int = Field(..., description="1-based position of the row in the batch")
    field: Optional[str] = Field(None, description="Field that failed, if known")
    kind: str = Field(..., description="Machine-checkable error kind")
    reason: str = Field(..., description="Human-readable reason")


class ImportReport(BaseModel):
    """Outcome of a bulk import; partial success is the normal case"""

    format: str
    total: int = Field(..., description="Number of rows received")
    imported: List[str] = Field(
        default_factory=list, description="Student IDs created or updated"
    )
    created: int = 0
    updated: int = 0
    errors: List[RowErrorItem] = Field(default_factory=list)
