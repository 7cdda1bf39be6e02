import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from school_admin.auth.models import TeacherProfile, User
from school_admin.auth.security import create_access_token, hash_password
from school_admin.core.enums import Role, UserStatus
from school_admin.core.models import FeeStructure, SchoolClass, Student, TeacherClassAssignment
from school_admin.db.session import Base, get_db
from school_admin.main import app

TEST_PASSWORD = "StrongPass123"


@pytest.fixture()
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh SQLite file per test; every session gets its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        future=True,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and asserting on it directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; one session per request, as in production."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(subject={"sub": str(user.id), "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
async def admin(db_session: AsyncSession) -> User:
    user = User(
        email="admin@greenfield-school.com",
        full_name="School Admin",
        password_hash=hash_password(TEST_PASSWORD),
        role=Role.ADMIN.value,
        status=UserStatus.ACTIVE.value,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture()
def admin_headers(admin: User) -> Dict[str, str]:
    return auth_headers(admin)


@pytest.fixture()
def make_teacher(db_session: AsyncSession):
    """Create a TEACHER user; with_profile=False leaves out the teacher profile."""

    async def _make(email: str, with_profile: bool = True, employee_id: Optional[str] = None) -> User:
        user = User(
            email=email,
            full_name=email.split("@")[0].title(),
            password_hash=hash_password(TEST_PASSWORD),
            role=Role.TEACHER.value,
            status=UserStatus.ACTIVE.value,
        )
        if with_profile:
            user.teacher_profile = TeacherProfile(
                employee_id=employee_id or f"EMP-{email.split('@')[0]}",
                phone_number="9876543210",
                joining_date=date(2024, 6, 1),
            )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture()
def make_class(db_session: AsyncSession):
    async def _make(name: str, **fees) -> SchoolClass:
        school_class = SchoolClass(name=name, is_active=True)
        db_session.add(school_class)
        await db_session.flush()
        if fees:
            structure = FeeStructure(class_id=school_class.id, **fees)
            structure.total_monthly_fee = sum(fees.values(), Decimal("0"))
            db_session.add(structure)
        await db_session.commit()
        return school_class

    return _make


@pytest.fixture()
def make_student(db_session: AsyncSession):
    async def _make(school_class: SchoolClass, roll_number: str, tuition_fee=Decimal("0"), **extra) -> Student:
        student = Student(
            roll_number=roll_number,
            name=extra.pop("name", f"Student {roll_number}"),
            class_id=school_class.id,
            tuition_fee=tuition_fee,
            lab_fee=extra.pop("lab_fee", Decimal("0")),
            library_fee=extra.pop("library_fee", Decimal("0")),
            sports_fee=extra.pop("sports_fee", Decimal("0")),
            is_active=extra.pop("is_active", True),
        )
        db_session.add(student)
        await db_session.commit()
        return student

    return _make


@pytest.fixture()
def assign(db_session: AsyncSession):
    async def _assign(teacher: User, school_class: SchoolClass) -> TeacherClassAssignment:
        tca = TeacherClassAssignment(
            teacher_id=teacher.teacher_profile.id,
            class_id=school_class.id,
            is_primary=True,
        )
        db_session.add(tca)
        await db_session.commit()
        return tca

    return _assign


@pytest.fixture()
def headers_for():
    """Bearer headers for an arbitrary user."""
    return auth_headers
