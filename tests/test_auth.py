from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.models import User
from school_admin.core.enums import UserStatus

TEST_PASSWORD = "StrongPass123"


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, admin: User) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": admin.email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 200
    data = response.json()

    assert "access_token" in data
    assert data["token_type"] == "bearer"

    user = data["user"]
    assert user["email"] == admin.email
    assert user["role"] == "ADMIN"
    assert user["teacher"] is None
    UUID(user["id"])


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, admin: User) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": admin.email, "password": "WrongPass999"},
    )
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "UnauthorizedError"


@pytest.mark.asyncio
async def test_login_deactivated_user(client: AsyncClient, db_session: AsyncSession, make_teacher) -> None:
    teacher = await make_teacher("inactive@greenfield-school.com")
    teacher.status = UserStatus.INACTIVE.value
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": teacher.email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 401
    assert "deactivated" in response.json()["detail"]


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/profile")
    assert response.status_code == 401
    assert response.json()["error"] == "UnauthorizedError"


@pytest.mark.asyncio
async def test_garbage_token_is_unauthorized(client: AsyncClient) -> None:
    response = await client.get(
        "/api/v1/auth/profile",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_teacher_profile_lists_assigned_classes(
    client: AsyncClient, make_teacher, make_class, assign, headers_for
) -> None:
    teacher = await make_teacher("asha@greenfield-school.com")
    grade_5 = await make_class("Grade 5")
    await assign(teacher, grade_5)

    response = await client.get("/api/v1/auth/profile", headers=headers_for(teacher))
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "TEACHER"
    assert data["teacher"]["employee_id"] == "EMP-asha"
    assert [c["class_name"] for c in data["assigned_classes"]] == ["Grade 5"]


@pytest.mark.asyncio
async def test_register_teacher_with_profile(
    client: AsyncClient, db_session: AsyncSession, admin_headers
) -> None:
    payload = {
        "email": "ravi@greenfield-school.com",
        "password": "StrongPass123",
        "name": "Ravi Kumar",
        "role": "TEACHER",
        "teacher": {"employee_id": "EMP-100", "phone_number": "9000000001"},
    }
    response = await client.post("/api/v1/auth/register", json=payload, headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["teacher"]["employee_id"] == "EMP-100"

    user = (
        await db_session.execute(select(User).where(User.email == payload["email"]))
    ).scalar_one_or_none()
    assert user is not None
    assert user.role == "TEACHER"

    duplicate = await client.post("/api/v1/auth/register", json=payload, headers=admin_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "ConflictError"


@pytest.mark.asyncio
async def test_register_requires_admin(client: AsyncClient, make_teacher, headers_for) -> None:
    teacher = await make_teacher("meena@greenfield-school.com")
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "x@greenfield-school.com", "password": "StrongPass123", "name": "X"},
        headers=headers_for(teacher),
    )
    assert response.status_code == 403
    assert response.json()["error"] == "ForbiddenError"


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, admin: User, admin_headers) -> None:
    weak = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "short"},
        headers=admin_headers,
    )
    assert weak.status_code == 400
    assert weak.json()["error"] == "ValidationError"

    response = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "NewerPass456"},
        headers=admin_headers,
    )
    assert response.status_code == 200

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": admin.email, "password": "NewerPass456"},
    )
    assert login.status_code == 200
