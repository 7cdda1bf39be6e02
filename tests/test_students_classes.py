from decimal import Decimal

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_class_crud(client: AsyncClient, admin_headers) -> None:
    created = await client.post(
        "/api/v1/classes", json={"name": "Nursery", "description": "Ages 3-4"}, headers=admin_headers
    )
    assert created.status_code == 201
    class_id = created.json()["id"]

    duplicate = await client.post("/api/v1/classes", json={"name": "Nursery"}, headers=admin_headers)
    assert duplicate.status_code == 409

    updated = await client.put(
        f"/api/v1/classes/{class_id}", json={"description": "Ages 3 to 4"}, headers=admin_headers
    )
    assert updated.json()["description"] == "Ages 3 to 4"

    listing = await client.get("/api/v1/classes", headers=admin_headers)
    assert [c["name"] for c in listing.json()] == ["Nursery"]

    deleted = await client.delete(f"/api/v1/classes/{class_id}", headers=admin_headers)
    assert deleted.status_code == 204
    missing = await client.get(f"/api/v1/classes/{class_id}", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_class_with_students_cannot_be_deleted(
    client: AsyncClient, admin_headers, make_class, make_student
) -> None:
    lkg = await make_class("LKG")
    await make_student(lkg, "LKG-001")

    response = await client.delete(f"/api/v1/classes/{lkg.id}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_student_roll_number_is_unique(client: AsyncClient, admin_headers, make_class) -> None:
    ukg = await make_class("UKG")
    payload = {"name": "Ira", "roll_number": "UKG-001", "class_id": str(ukg.id), "tuition_fee": "300"}

    first = await client.post("/api/v1/students", json=payload, headers=admin_headers)
    assert first.status_code == 201
    second = await client.post("/api/v1/students", json={**payload, "name": "Other"}, headers=admin_headers)
    assert second.status_code == 409
    assert second.json()["error"] == "ConflictError"


@pytest.mark.asyncio
async def test_roll_number_cannot_be_changed(client: AsyncClient, admin_headers, make_class, make_student) -> None:
    grade_1 = await make_class("Grade 1")
    student = await make_student(grade_1, "G1-001")

    response = await client.put(
        f"/api/v1/students/{student.id}", json={"roll_number": "G1-999"}, headers=admin_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_explicit_fees_override_class_structure(client: AsyncClient, admin_headers, make_class) -> None:
    grade_2 = await make_class("Grade 2", tuition_fee=Decimal("500"), sports_fee=Decimal("40"))
    response = await client.post(
        "/api/v1/students",
        json={"name": "Dev", "roll_number": "G2-001", "class_id": str(grade_2.id), "tuition_fee": "450"},
        headers=admin_headers,
    )
    data = response.json()
    assert Decimal(data["tuition_fee"]) == Decimal("450")
    assert Decimal(data["sports_fee"]) == Decimal("40")
    assert Decimal(data["total_monthly_fee"]) == Decimal("490")


@pytest.mark.asyncio
async def test_student_in_unknown_class_is_rejected(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/students",
        json={"name": "Nobody", "roll_number": "X-1", "class_id": "00000000-0000-0000-0000-000000000001"},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_teacher_reads_roster_without_fee_data(
    client: AsyncClient, make_teacher, make_class, make_student, headers_for
) -> None:
    teacher = await make_teacher("asha@greenfield-school.com")
    grade_3 = await make_class("Grade 3", tuition_fee=Decimal("700"))
    student = await make_student(grade_3, "G3-001", tuition_fee=Decimal("700"))

    listing = await client.get("/api/v1/students", headers=headers_for(teacher))
    assert listing.status_code == 200
    assert listing.json()[0]["tuition_fee"] is None

    detail = await client.get(f"/api/v1/students/{student.id}", headers=headers_for(teacher))
    assert detail.json()["fee_records"] == []
    assert detail.json()["total_monthly_fee"] is None

    classes = await client.get("/api/v1/classes", headers=headers_for(teacher))
    assert classes.json()[0]["total_monthly_fee"] is None

    create = await client.post(
        "/api/v1/students",
        json={"name": "X", "roll_number": "G3-002", "class_id": str(grade_3.id)},
        headers=headers_for(teacher),
    )
    assert create.status_code == 403


@pytest.mark.asyncio
async def test_deactivate_and_delete_student(
    client: AsyncClient, admin_headers, make_class, make_student
) -> None:
    grade_4 = await make_class("Grade 4")
    student = await make_student(grade_4, "G4-001")

    deactivated = await client.delete(f"/api/v1/students/{student.id}", headers=admin_headers)
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    active = await client.get("/api/v1/students", params={"is_active": True}, headers=admin_headers)
    assert active.json() == []

    removed = await client.delete(f"/api/v1/students/{student.id}/permanent", headers=admin_headers)
    assert removed.status_code == 204
    gone = await client.get(f"/api/v1/students/{student.id}", headers=admin_headers)
    assert gone.status_code == 404
