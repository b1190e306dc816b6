"""Integration tests: account creation and class enrollment endpoints."""

from app.models.enums import UserRole
from tests.factories import TEST_PASSWORD, auth_headers, make_user


async def test_super_admin_creates_teacher(async_client, api_base, db_session, unique_suffix):
    admin = await make_user(db_session, UserRole.SUPER_ADMIN)
    email = f"teacher_{unique_suffix}@school.example.com"

    resp = await async_client.post(
        f"{api_base}/users/teachers",
        headers=auth_headers(admin),
        json={"email": email, "password": TEST_PASSWORD, "first_name": "Tess", "last_name": "Ng"},
    )

    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["role"] == "TEACHER"

    duplicate = await async_client.post(
        f"{api_base}/users/teachers",
        headers=auth_headers(admin),
        json={"email": email.upper(), "password": TEST_PASSWORD, "first_name": "Tess", "last_name": "Ng"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "Email already registered"


async def test_teacher_cannot_create_teacher(async_client, api_base, teacher_headers, unique_suffix):
    resp = await async_client.post(
        f"{api_base}/users/teachers",
        headers=teacher_headers,
        json={
            "email": f"t_{unique_suffix}@school.example.com",
            "password": TEST_PASSWORD,
            "first_name": "A",
            "last_name": "B",
        },
    )
    assert resp.status_code == 403


async def test_class_lifecycle(async_client, api_base, teacher_headers, unique_suffix):
    created = await async_client.post(
        f"{api_base}/classes", headers=teacher_headers, json={"name": "Economics", "emoji": "📈"}
    )
    assert created.status_code == 200, created.text
    cls = created.json()["data"]
    assert len(cls["code"]) == 6

    student_resp = await async_client.post(
        f"{api_base}/users/students",
        headers=teacher_headers,
        json={
            "email": f"student_{unique_suffix}@school.example.com",
            "password": TEST_PASSWORD,
            "first_name": "Stu",
            "last_name": "Dent",
            "class_id": cls["id"],
        },
    )
    assert student_resp.status_code == 201, student_resp.text

    listed = await async_client.get(f"{api_base}/classes", headers=teacher_headers)
    [row] = listed.json()["data"]
    assert row["student_count"] == 1

    login = await async_client.post(
        f"{api_base}/auth/student/login",
        json={"school_email": f"student_{unique_suffix}@school.example.com", "password": TEST_PASSWORD},
    )
    student_headers = {"Authorization": f"Bearer {login.json()['data']['access_token']}"}
    enrolled = await async_client.get(f"{api_base}/classes/enrolled", headers=student_headers)
    assert [c["id"] for c in enrolled.json()["data"]] == [cls["id"]]


async def test_student_joins_by_code(async_client, api_base, classroom, db_session):
    newcomer = await make_user(db_session, UserRole.STUDENT)

    resp = await async_client.post(
        f"{api_base}/classes/join",
        headers=auth_headers(newcomer),
        json={"code": f"  {classroom.code.lower()} "},
    )

    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["student_count"] == 2


async def test_join_with_unknown_code(async_client, api_base, student_headers):
    resp = await async_client.post(f"{api_base}/classes/join", headers=student_headers, json={"code": "ZZZZZZ"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Invalid class code"


async def test_enroll_into_someone_elses_class(async_client, api_base, classroom, db_session):
    other_teacher = await make_user(db_session, UserRole.TEACHER)
    outsider = await make_user(db_session, UserRole.STUDENT)

    resp = await async_client.post(
        f"{api_base}/classes/{classroom.id}/students",
        headers=auth_headers(other_teacher),
        json={"student_id": str(outsider.id)},
    )
    assert resp.status_code == 404
