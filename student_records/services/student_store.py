from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from student_records.db.models import Student
from student_records.db.session import get_async_session
from student_records.utils.errors import DuplicateKeyError, NotFoundError
from student_records.utils.logging import get_logger

logger = get_logger()

WRITABLE_COLUMNS = (
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


def _duplicate_field(exc: IntegrityError, default: str) -> str:
    """Name the unique key an IntegrityError was raised for"""
    detail = str(exc.orig).lower()
    if "email" in detail:
        return "email"
    if "student_id" in detail:
        return "studentId"
    return default


def _to_columns(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep writable columns only, with enums flattened and emails lower-cased"""
    columns = {}
    for key, value in data.items():
        if key not in WRITABLE_COLUMNS:
            continue
        if isinstance(value, Enum):
            value = value.value
        if key == "email" and isinstance(value, str):
            value = value.strip().lower()
        columns[key] = value
    return columns


class StudentStore:
    """
    Persistence of student records.

    Every write commits on its own, so a failed write leaves no partial state
    behind and never affects records written before it.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get(self, student_id: str) -> Optional[Student]:
        """Get student by student ID or return None if not found"""
        result = await self.db.execute(
            select(Student).where(Student.student_id == student_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[Student]:
        result = await self.db.execute(
            select(Student).where(Student.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def find(
        self,
        student_id: Optional[str] = None,
        full_name: Optional[str] = None,
        faculty: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Student]:
        """
        Find students matching every given criterion.

        student_id matches exactly; full_name and faculty match
        case-insensitive substrings.
        """
        query = select(Student)
        if student_id:
            query = query.where(Student.student_id == student_id)
        if full_name:
            query = query.where(Student.full_name.ilike(f"%{full_name}%"))
        if faculty:
            query = query.where(Student.faculty.ilike(f"%{faculty}%"))

        query = query.order_by(Student.student_id).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(Student.id)))
        return result.scalar_one()

    async def _check_unique(
        self, student_id: Optional[str], email: Optional[str], exclude_id: Optional[int] = None
    ) -> None:
        if student_id is not None:
            existing = await self.get(student_id)
            if existing is not None and existing.id != exclude_id:
                raise DuplicateKeyError("studentId", student_id)

        if email is not None:
            existing = await self.get_by_email(email)
            if existing is not None and existing.id != exclude_id:
                raise DuplicateKeyError("email", email)

    async def create(self, data: Mapping[str, Any]) -> Student:
        """
        Insert a new student.

        Raises:
            DuplicateKeyError: student ID or email already taken
        """
        columns = _to_columns(data)
        await self._check_unique(columns.get("student_id"), columns.get("email"))

        student = Student(**columns)
        self.db.add(student)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            field = _duplicate_field(e, "studentId")
            value = columns.get("email" if field == "email" else "student_id")
            raise DuplicateKeyError(field, value)
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(student)
        logger.info(f"Created student {student.student_id}")
        return student

    async def update(self, student_id: str, changes: Mapping[str, Any]) -> Student:
        """
        Apply a partial update to an existing student.

        Raises:
            NotFoundError: no student with this ID
            DuplicateKeyError: the new email belongs to another student
        """
        student = await self.get(student_id)
        if student is None:
            raise NotFoundError(f"Student '{student_id}' not found")

        columns = _to_columns(changes)
        columns.pop("student_id", None)
        await self._check_unique(None, columns.get("email"), exclude_id=student.id)

        for key, value in columns.items():
            setattr(student, key, value)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateKeyError("email", columns.get("email"))
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(student)
        logger.info(
            f"Updated student {student.student_id}: {', '.join(sorted(columns)) or 'no changes'}"
        )
        return student

    async def delete(self, student_id: str) -> None:
        """
        Raises:
            NotFoundError: no student with this ID
        """
        student = await self.get(student_id)
        if student is None:
            raise NotFoundError(f"Student '{student_id}' not found")

        await self.db.delete(student)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Deleted student {student_id}")

    async def all(self) -> Sequence[Student]:
        return await self.find()

    async def rollback(self) -> None:
        """Discard whatever a failed operation left in the session"""
        await self.db.rollback()


def get_student_store(
    db: AsyncSession = Depends(get_async_session),
) -> StudentStore:
    return StudentStore(db)
