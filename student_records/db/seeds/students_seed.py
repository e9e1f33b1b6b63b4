from datetime import date

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from student_records.db.models import Student, Gender, Faculty, StudentStatus
from student_records.utils.logging import get_logger

logger = get_logger()


async def seed_students(db_session: AsyncSession):
    """Seed sample students - clear existing and add new"""

    await db_session.execute(delete(Student))
    await db_session.commit()

    students_data = [
        (
            "22120001",
            "Nguyễn Văn An",
            date(2004, 3, 12),
            Gender.MALE,
            Faculty.LAW,
            "K2022",
            "Chính quy",
            "227 Nguyễn Văn Cừ, Quận 5, TP.HCM",
            "an.nguyen@student.university.edu.vn",
            "0901234567",
            StudentStatus.STUDYING,
        ),
        (
            "22120002",
            "Trần Thị Bình",
            date(2004, 7, 25),
            Gender.FEMALE,
            Faculty.BUSINESS_ENGLISH,
            "K2022",
            "Chất lượng cao",
            "12 Lê Lợi, Quận 1, TP.HCM",
            "binh.tran@student.university.edu.vn",
            "0912345678",
            StudentStatus.STUDYING,
        ),
        (
            "21120003",
            "Lê Hoàng Cường",
            date(2003, 11, 2),
            Gender.MALE,
            Faculty.JAPANESE,
            "K2021",
            "Chính quy",
            "45 Trần Hưng Đạo, Quận 1, TP.HCM",
            "cuong.le@student.university.edu.vn",
            "0923456789",
            StudentStatus.DEFERRED,
        ),
        (
            "19120004",
            "Phạm Minh Duyên",
            date(2001, 1, 30),
            Gender.FEMALE,
            Faculty.FRENCH,
            "K2019",
            "Chính quy",
            "8 Hai Bà Trưng, Quận 3, TP.HCM",
            "duyen.pham@student.university.edu.vn",
            "0934567890",
            StudentStatus.GRADUATED,
        ),
    ]

    db_session.add_all(
        [
            Student(
                student_id=student_id,
                full_name=full_name,
                date_of_birth=date_of_birth,
                gender=gender.value,
                faculty=faculty.value,
                course=course,
                program=program,
                address=address,
                email=email,
                phone=phone,
                status=status.value,
            )
            for (
                student_id,
                full_name,
                date_of_birth,
                gender,
                faculty,
                course,
                program,
                address,
                email,
                phone,
                status,
            ) in students_data
        ]
    )
    await db_session.commit()

    logger.info(f"Seeded {len(students_data)} students")
