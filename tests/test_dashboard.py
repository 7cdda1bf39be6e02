from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_dashboard_figures(client: AsyncClient, admin_headers, make_class, make_student) -> None:
    grade_1 = await make_class("Grade 1")
    grade_2 = await make_class("Grade 2")
    await make_student(grade_1, "G1-001", tuition_fee=Decimal("500"))
    await make_student(grade_2, "G2-001", tuition_fee=Decimal("300"))
    year = 2024

    generated = await client.post(
        "/api/v1/fee-records/generate",
        json={"month": "February", "year": year, "due_date": (date.today() - timedelta(days=1)).isoformat()},
        headers=admin_headers,
    )
    records = {r["roll_number"]: r for r in generated.json()["created"]}
    await client.post(
        f"/api/v1/fee-records/{records['G1-001']['id']}/payment",
        json={"amount": "500", "payment_mode": "CASH"},
        headers=admin_headers,
    )
    await client.post("/api/v1/fee-records/update-overdue", headers=admin_headers)

    stats = (await client.get("/api/v1/dashboard/stats", params={"year": year}, headers=admin_headers)).json()
    assert stats["total_students"] == 2
    assert Decimal(stats["total_collected"]) == Decimal("500")
    assert Decimal(stats["overdue_amount"]) == Decimal("300")
    assert stats["status_counts"] == {"Pending": 0, "Paid": 1, "Overdue": 1}
    assert [o["student_name"] for o in stats["oldest_overdue"]] == ["Student G2-001"]

    trend = (await client.get("/api/v1/dashboard/monthly-trend", params={"year": year}, headers=admin_headers)).json()
    assert len(trend) == 12
    february = trend[1]
    assert february["month"] == "February"
    assert Decimal(february["expected"]) == Decimal("800")
    assert Decimal(february["collected"]) == Decimal("500")
    assert Decimal(february["pending"]) == Decimal("300")

    class_wise = (await client.get("/api/v1/dashboard/class-wise", params={"year": year}, headers=admin_headers)).json()
    assert [(c["class_name"], Decimal(c["collected"])) for c in class_wise] == [
        ("Grade 1", Decimal("500")),
        ("Grade 2", Decimal("0")),
    ]

    modes = (await client.get("/api/v1/dashboard/payment-modes", params={"year": year}, headers=admin_headers)).json()
    assert [(m["payment_mode"], Decimal(m["amount"])) for m in modes] == [("CASH", Decimal("500"))]
