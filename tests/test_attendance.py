from datetime import date, timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.models import StudentAttendance

TODAY = date.today().isoformat()


async def _attendance_count(db_session: AsyncSession) -> int:
    return (await db_session.execute(select(func.count(StudentAttendance.id)))).scalar()


@pytest.mark.asyncio
async def test_assigned_teacher_can_mark(
    client: AsyncClient, make_teacher, make_class, make_student, assign, headers_for
) -> None:
    teacher = await make_teacher("asha@greenfield-school.com")
    grade_3 = await make_class("Grade 3")
    student = await make_student(grade_3, "G3-001")
    await assign(teacher, grade_3)

    response = await client.post(
        "/api/v1/attendance",
        json={"student_id": str(student.id), "date": TODAY, "status": "PRESENT"},
        headers=headers_for(teacher),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "PRESENT"
    assert data["class_name"] == "Grade 3"
    assert data["marked_by"] == str(teacher.id)


@pytest.mark.asyncio
async def test_unassigned_teacher_is_denied_and_admin_is_allowed(
    client: AsyncClient, db_session: AsyncSession, admin_headers, make_teacher, make_class, make_student, headers_for
) -> None:
    teacher = await make_teacher("ravi@greenfield-school.com")
    grade_4 = await make_class("Grade 4")
    student = await make_student(grade_4, "G4-001")
    payload = {"student_id": str(student.id), "date": TODAY, "status": "ABSENT"}

    denied = await client.post("/api/v1/attendance", json=payload, headers=headers_for(teacher))
    assert denied.status_code == 403
    assert denied.json()["error"] == "ForbiddenError"
    assert await _attendance_count(db_session) == 0

    allowed = await client.post("/api/v1/attendance", json=payload, headers=admin_headers)
    assert allowed.status_code == 200
    assert await _attendance_count(db_session) == 1


@pytest.mark.asyncio
async def test_teacher_without_profile_is_denied(
    client: AsyncClient, make_teacher, make_class, make_student, headers_for
) -> None:
    teacher = await make_teacher("noprofile@greenfield-school.com", with_profile=False)
    grade_5 = await make_class("Grade 5")
    student = await make_student(grade_5, "G5-001")

    response = await client.post(
        "/api/v1/attendance",
        json={"student_id": str(student.id), "date": TODAY, "status": "PRESENT"},
        headers=headers_for(teacher),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_bulk_across_unassigned_class_writes_nothing(
    client: AsyncClient, db_session: AsyncSession, make_teacher, make_class, make_student, assign, headers_for
) -> None:
    teacher = await make_teacher("meena@greenfield-school.com")
    grade_6 = await make_class("Grade 6")
    grade_7 = await make_class("Grade 7")
    mine = await make_student(grade_6, "G6-001")
    other = await make_student(grade_7, "G7-001")
    await assign(teacher, grade_6)

    response = await client.post(
        "/api/v1/attendance/bulk",
        json={
            "date": TODAY,
            "records": [
                {"student_id": str(mine.id), "status": "PRESENT"},
                {"student_id": str(other.id), "status": "PRESENT"},
            ],
        },
        headers=headers_for(teacher),
    )
    assert response.status_code == 403
    assert await _attendance_count(db_session) == 0


@pytest.mark.asyncio
async def test_bulk_with_unknown_student_writes_nothing(
    client: AsyncClient, db_session: AsyncSession, admin_headers, make_class, make_student
) -> None:
    grade_8 = await make_class("Grade 8")
    student = await make_student(grade_8, "G8-001")

    response = await client.post(
        "/api/v1/attendance/bulk",
        json={
            "date": TODAY,
            "records": [
                {"student_id": str(student.id), "status": "PRESENT"},
                {"student_id": str(uuid4()), "status": "ABSENT"},
            ],
        },
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundError"
    assert await _attendance_count(db_session) == 0


@pytest.mark.asyncio
async def test_marking_twice_overwrites(
    client: AsyncClient, db_session: AsyncSession, admin_headers, make_class, make_student
) -> None:
    grade_9 = await make_class("Grade 9")
    student = await make_student(grade_9, "G9-001")
    payload = {"date": TODAY, "class_id": str(grade_9.id), "records": [{"student_id": str(student.id), "status": "ABSENT"}]}

    first = await client.post("/api/v1/attendance/bulk", json=payload, headers=admin_headers)
    assert first.status_code == 200
    assert first.json()["marked_count"] == 1

    payload["records"][0].update(status="SICK", remarks="Fever")
    second = await client.post("/api/v1/attendance/bulk", json=payload, headers=admin_headers)
    assert second.status_code == 200

    rows = (await db_session.execute(select(StudentAttendance))).scalars().all()
    assert len(rows) == 1
    assert rows[0].status == "SICK"
    assert rows[0].remarks == "Fever"


@pytest.mark.asyncio
async def test_future_date_is_rejected(client: AsyncClient, admin_headers, make_class, make_student) -> None:
    grade_10 = await make_class("Grade 10")
    student = await make_student(grade_10, "G10-001")
    tomorrow = (date.today() + timedelta(days=1)).isoformat()

    response = await client.post(
        "/api/v1/attendance",
        json={"student_id": str(student.id), "date": tomorrow, "status": "PRESENT"},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_summary_and_class_views(
    client: AsyncClient, admin_headers, make_teacher, make_class, make_student, assign, headers_for
) -> None:
    teacher = await make_teacher("kiran@greenfield-school.com")
    grade_11 = await make_class("Grade 11")
    grade_12 = await make_class("Grade 12")
    s1 = await make_student(grade_11, "G11-001")
    await make_student(grade_11, "G11-002")
    outsider = await make_student(grade_12, "G12-001")
    await assign(teacher, grade_11)
    headers = headers_for(teacher)

    day = date.today()
    for offset, status in enumerate(["PRESENT", "LATE", "ABSENT", "PRESENT"]):
        response = await client.post(
            "/api/v1/attendance",
            json={"student_id": str(s1.id), "date": (day - timedelta(days=offset)).isoformat(), "status": status},
            headers=headers,
        )
        assert response.status_code == 200

    summary = await client.get(f"/api/v1/attendance/student/{s1.id}/summary", headers=headers)
    data = summary.json()
    assert data["total_days"] == 4
    assert data["present"] == 2
    assert data["late"] == 1
    assert data["absent"] == 1
    assert data["attendance_percentage"] == 75.0

    class_day = await client.get(f"/api/v1/attendance/class/{grade_11.id}/date/{day.isoformat()}", headers=headers)
    data = class_day.json()
    assert data["total_students"] == 2
    assert data["total_present"] == 1
    assert data["not_marked"] == 1
    by_roll = {s["roll_number"]: s["status"] for s in data["students"]}
    assert by_roll == {"G11-001": "PRESENT", "G11-002": None}

    report = await client.get(f"/api/v1/attendance/class/{grade_11.id}/report", headers=headers)
    rows = {r["roll_number"]: r for r in report.json()["students"]}
    assert rows["G11-001"]["total_days"] == 4
    assert rows["G11-002"]["attendance_percentage"] == 0.0

    listing = await client.get("/api/v1/attendance", headers=headers)
    assert {r["student_id"] for r in listing.json()} == {str(s1.id)}

    denied_summary = await client.get(f"/api/v1/attendance/student/{outsider.id}/summary", headers=headers)
    assert denied_summary.status_code == 403
    denied_class = await client.get(f"/api/v1/attendance/class/{grade_12.id}/report", headers=headers)
    assert denied_class.status_code == 403


@pytest.mark.asyncio
async def test_only_admin_deletes_attendance(
    client: AsyncClient, admin_headers, make_teacher, make_class, make_student, assign, headers_for
) -> None:
    teacher = await make_teacher("deepa@greenfield-school.com")
    grade_1 = await make_class("Grade 1")
    student = await make_student(grade_1, "G1-001")
    await assign(teacher, grade_1)
    marked = await client.post(
        "/api/v1/attendance",
        json={"student_id": str(student.id), "date": TODAY, "status": "PRESENT"},
        headers=headers_for(teacher),
    )
    attendance_id = marked.json()["id"]

    forbidden = await client.delete(f"/api/v1/attendance/{attendance_id}", headers=headers_for(teacher))
    assert forbidden.status_code == 403

    deleted = await client.delete(f"/api/v1/attendance/{attendance_id}", headers=admin_headers)
    assert deleted.status_code == 204
