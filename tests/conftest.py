import pytest
from datetime import date
from typing import AsyncGenerator, Any, Dict

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from student_records.config.settings import settings
from student_records.db.models import Base, Student
from student_records.db.session import get_async_session
from student_records.main import app
from student_records.services.bulk_import_exporter import BulkImportExporter
from student_records.services.student_service import StudentService
from student_records.services.student_store import StudentStore


# Test database setup
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_student_data(**overrides: Any) -> Dict[str, Any]:
    """Complete, valid student fields (snake_case), with optional overrides."""
    data = {
        "student_id": "22120001",
        "full_name": "Nguyễn Văn An",
        "date_of_birth": date(2004, 3, 12),
        "gender": "Nam",
        "faculty": "Khoa Luật",
        "course": "K2022",
        "program": "Chính quy",
        "address": "227 Nguyễn Văn Cừ, Quận 5, TP.HCM",
        "email": "an.nguyen@example.edu.vn",
        "phone": "0901234567",
        "status": "Đang học",
    }
    data.update(overrides)
    return data


@pytest.fixture
def student_data():
    """Factory fixture building valid student fields."""
    return make_student_data


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async_session_maker = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def student_store(db_session: AsyncSession) -> StudentStore:
    return StudentStore(db_session)


@pytest.fixture
def student_service(student_store: StudentStore) -> StudentService:
    return StudentService(student_store, allowed_email_domains=[])


@pytest.fixture
def bulk_importer(student_store: StudentStore) -> BulkImportExporter:
    return BulkImportExporter(student_store, allowed_email_domains=[])


# Test data factories
@pytest_asyncio.fixture
async def studying_student(student_store: StudentStore) -> Student:
    """A student currently studying."""
    return await student_store.create(make_student_data())


@pytest_asyncio.fixture
async def graduated_student(student_store: StudentStore) -> Student:
    """A student in a terminal status."""
    return await student_store.create(
        make_student_data(
            student_id="19120004",
            full_name="Phạm Minh Duyên",
            date_of_birth=date(2001, 1, 30),
            gender="Nữ",
            faculty="Khoa Tiếng Pháp",
            course="K2019",
            email="duyen.pham@example.edu.vn",
            phone="0934567890",
            status="Đã tốt nghiệp",
        )
    )


@pytest_asyncio.fixture
async def legacy_status_student(student_store: StudentStore) -> Student:
    """A student stored with a status from an older vocabulary."""
    return await student_store.create(
        make_student_data(
            student_id="20120009",
            full_name="Võ Thị Hạnh",
            email="hanh.vo@example.edu.vn",
            phone="0987654321",
            status="Tạm dừng học",
        )
    )


@pytest_asyncio.fixture
async def client(test_engine, tmp_path, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, using the test database."""
    async_session_maker = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async def override_get_async_session():
        async with async_session_maker() as session:
            yield session

    monkeypatch.setattr(settings, "EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.setattr(settings, "ALLOWED_EMAIL_DOMAINS", [])
    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as http_client:
        yield http_client

    app.dependency_overrides.clear()
