from datetime import datetime, date
from sqlalchemy import String, Integer, Date, DateTime, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import enum

from student_records.utils.datetime_utils import naive_utc_now


class Base(DeclarativeBase):
    pass


# Enums
class Gender(enum.Enum):
    MALE = "Nam"
    FEMALE = "Nữ"


class Faculty(enum.Enum):
    LAW = "Khoa Luật"
    BUSINESS_ENGLISH = "Khoa Tiếng Anh thương mại"
    JAPANESE = "Khoa Tiếng Nhật"
    FRENCH = "Khoa Tiếng Pháp"


class StudentStatus(enum.Enum):
    STUDYING = "Đang học"
    GRADUATED = "Đã tốt nghiệp"
    DROPPED_OUT = "Đã thôi học"
    DEFERRED = "Bảo lưu"
    SUSPENDED = "Đình chỉ"


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, onupdate=naive_utc_now, nullable=False
    )


# Models
class Student(Base, AuditMixin):
    """
    One student record.

    Enumerated attributes (gender, faculty, status) are stored as their plain
    string values so that records written by older versions of the service,
    whose status vocabulary differed, can still be loaded and reported.
    """

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    faculty: Mapped[str] = mapped_column(String(100), nullable=False)
    course: Mapped[str] = mapped_column(String(50), nullable=False)
    program: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False
    )  # RFC 5321 max length
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        Index("ix_students_full_name", "full_name"),
        Index("ix_students_faculty", "faculty"),
    )

    def __repr__(self) -> str:
        return f"<Student {self.student_id} {self.full_name!r} ({self.status})>"
