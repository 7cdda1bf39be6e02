from decimal import Decimal

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_fee_structure_lifecycle(client: AsyncClient, admin_headers, make_class) -> None:
    grade_1 = await make_class("Grade 1")
    payload = {"class_id": str(grade_1.id), "tuition_fee": "500", "lab_fee": "50", "exam_fee": "100"}

    created = await client.post("/api/v1/fee-structures", json=payload, headers=admin_headers)
    assert created.status_code == 201
    assert Decimal(created.json()["total_monthly_fee"]) == Decimal("650")
    assert created.json()["class_name"] == "Grade 1"

    duplicate = await client.post("/api/v1/fee-structures", json=payload, headers=admin_headers)
    assert duplicate.status_code == 409

    updated = await client.put(
        f"/api/v1/fee-structures/class/{grade_1.id}",
        json={"lab_fee": "75", "total_monthly_fee": "1"},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    assert Decimal(updated.json()["total_monthly_fee"]) == Decimal("675")

    fetched = await client.get(f"/api/v1/fee-structures/class/{grade_1.id}", headers=admin_headers)
    assert Decimal(fetched.json()["lab_fee"]) == Decimal("75")

    deleted = await client.delete(f"/api/v1/fee-structures/class/{grade_1.id}", headers=admin_headers)
    assert deleted.status_code == 204
    missing = await client.get(f"/api/v1/fee-structures/class/{grade_1.id}", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_fee_structure_in_use_cannot_be_deleted(
    client: AsyncClient, admin_headers, make_class, make_student
) -> None:
    grade_2 = await make_class("Grade 2", tuition_fee=Decimal("400"))
    await make_student(grade_2, "G2-001")

    response = await client.delete(f"/api/v1/fee-structures/class/{grade_2.id}", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_fee_structure_for_unknown_class(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/fee-structures",
        json={"class_id": "00000000-0000-0000-0000-000000000001", "tuition_fee": "10"},
        headers=admin_headers,
    )
    assert response.status_code == 404
