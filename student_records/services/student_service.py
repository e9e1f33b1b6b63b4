from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends

from student_records.config.settings import settings
from student_records.db.models import Student
from student_records.schemas.student_schemas import (
    StudentCreateRequest,
    StudentResponse,
    StudentUpdateRequest,
)
from student_records.services.record_validator import ensure_valid_record
from student_records.services.status_transition import check_transition
from student_records.services.student_store import StudentStore, get_student_store
from student_records.utils.errors import FormatError, NotFoundError
from student_records.utils.logging import get_logger

logger = get_logger()


def to_response(student: Student) -> Dict[str, Any]:
    return StudentResponse.model_validate(student).model_dump(mode="json", by_alias=True)


class StudentService:
    """Business rules for creating, updating and looking up students"""

    def __init__(self, store: StudentStore, allowed_email_domains=None, phone_pattern=None):
        self.store = store
        self.allowed_email_domains = (
            settings.ALLOWED_EMAIL_DOMAINS
            if allowed_email_domains is None
            else allowed_email_domains
        )
        self.phone_pattern = phone_pattern or settings.PHONE_NUMBER_PATTERN

    async def create_student(self, payload: StudentCreateRequest) -> Student:
        """Validate field formats, then insert (duplicates are rejected by the store)"""
        data = payload.model_dump()
        ensure_valid_record(
            data,
            allowed_email_domains=self.allowed_email_domains,
            phone_pattern=self.phone_pattern,
        )
        return await self.store.create(data)

    async def update_student(
        self, student_id: str, payload: StudentUpdateRequest
    ) -> Student:
        """
        Apply a partial update.

        Only the fields sent by the client are validated and written. A status
        change is checked against the transition table using the stored
        status; both checks run before anything is written.
        """
        changes = payload.model_dump(exclude_unset=True)
        ensure_valid_record(
            changes,
            fields_present=changes.keys(),
            allowed_email_domains=self.allowed_email_domains,
            phone_pattern=self.phone_pattern,
        )

        for field, value in changes.items():
            if value is None:
                raise FormatError(field, f"{field} cannot be empty")

        current = await self.store.get(student_id)
        if current is None:
            raise NotFoundError(f"Student '{student_id}' not found")

        if "status" in changes:
            check_transition(current.status, changes["status"])

        return await self.store.update(student_id, changes)

    async def delete_student(self, student_id: str) -> None:
        await self.store.delete(student_id)

    async def get_student(self, student_id: str) -> Student:
        student = await self.store.get(student_id)
        if student is None:
            raise NotFoundError(f"Student '{student_id}' not found")
        return student

    async def list_students(self, page: int, per_page: int) -> Tuple[List[Student], int]:
        total = await self.store.count()
        students = await self.store.find(offset=(page - 1) * per_page, limit=per_page)
        return students, total

    async def search_students(
        self,
        student_id: Optional[str] = None,
        full_name: Optional[str] = None,
        faculty: Optional[str] = None,
    ) -> List[Student]:
        """Search by exact ID and/or name/faculty substring; no criteria finds nothing"""
        if not (student_id or full_name or faculty):
            return []

        students = await self.store.find(
            student_id=student_id, full_name=full_name, faculty=faculty
        )
        logger.info(
            f"Search studentId={student_id!r} fullName={full_name!r} faculty={faculty!r}: {len(students)} result(s)"
        )
        return students


def get_student_service(
    store: StudentStore = Depends(get_student_store),
) -> StudentService:
    return StudentService(store)
