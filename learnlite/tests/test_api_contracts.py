"""
learnlite/tests/test_api_contracts.py
API contract tests

Response envelopes, error format, request ids, authentication and the
operational endpoints. Clients depend on these shapes; they must not drift.
"""
from httpx import ASGITransport, AsyncClient

from learnlite.config.settings import settings
from learnlite.main import app
from learnlite.orm.user import UserRole

from conftest import TEST_PASSWORD, auth_headers


def assert_error(response, status_code, code):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["ok"] is False
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    assert body["error"]["timestamp"]
    assert body["version"] == settings.api_version
    return body["error"]


class TestEnvelopes:

    async def test_success_envelope(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["version"] == settings.api_version
        assert body["data"]["name"] == settings.app_name
        assert "courses" in body["data"]["modules"]

    async def test_paginated_envelope(self, client, factory, instructor):
        for _ in range(3):
            await factory.course(instructor)

        response = await client.get("/api/courses", params={"page": 2, "limit": 2})
        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}

    async def test_pagination_is_clamped(self, client):
        response = await client.get("/api/courses", params={"page": "-3", "limit": "5000"})
        assert response.status_code == 200
        pagination = response.json()["pagination"]
        assert pagination["page"] == 1
        assert pagination["limit"] == 100

    async def test_unknown_route(self, client):
        error = assert_error(await client.get("/api/nope"), 404, "NOT_FOUND")
        assert error["message"] == "Route GET /api/nope not found"

    async def test_error_carries_request_id(self, client):
        response = await client.get("/api/auth/me", headers={"X-Request-ID": "req-123"})
        error = assert_error(response, 401, "UNAUTHORIZED")
        assert error["requestId"] == "req-123"
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_request_id_generated(self, client):
        response = await client.get("/healthz")
        assert len(response.headers["X-Request-ID"]) == 36

    async def test_validation_error_lists_fields(self, client):
        response = await client.post("/api/auth/register", json={"email": "not-an-email", "password": "123"})
        error = assert_error(response, 400, "VALIDATION_ERROR")
        fields = {item["field"] for item in error["fields"]}
        assert {"email", "password", "name"} <= fields

    async def test_unhandled_error_is_masked(self, factory, session_factory, monkeypatch):
        from learnlite.database import get_db
        from learnlite.services.course_service import CourseService

        async def explode(*args, **kwargs):
            raise RuntimeError("database password is hunter2")

        monkeypatch.setattr(CourseService, "list_courses", explode)

        async def override_get_db():
            async with session_factory() as session:
                yield session

        app.dependency_overrides[get_db] = override_get_db
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        try:
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.get("/api/courses")
        finally:
            app.dependency_overrides.clear()

        error = assert_error(response, 500, "INTERNAL_ERROR")
        assert "hunter2" not in error["message"]
        assert "log id" in error["message"]


class TestHealthEndpoints:

    async def test_healthz(self, client):
        response = await client.get("/healthz")
        assert response.status_code == 200
        assert response.text == "ok"

    async def test_readiness(self, client, admin):
        response = await client.get("/readiness")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "ready"
        assert data["database"]["status"] == "ok"
        assert data["database"]["users"] == 1


class TestAuthentication:

    async def test_register_login_me(self, client):
        response = await client.post("/api/auth/register", json={
            "email": "New.Student@Example.com",
            "password": "secret1",
            "name": "New Student",
        })
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "new.student@example.com"
        assert data["user"]["role"] == "student"
        assert "password_hash" not in data["user"]

        response = await client.post("/api/auth/login", json={
            "email": "new.student@example.com", "password": "secret1",
        })
        assert response.status_code == 200
        token = response.json()["data"]["token"]

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "New Student"

    async def test_register_duplicate_email(self, client, student):
        response = await client.post("/api/auth/register", json={
            "email": student.email.upper(), "password": "secret1", "name": "Copy",
        })
        assert_error(response, 409, "EMAIL_EXISTS")

    async def test_register_admin_is_refused(self, client):
        response = await client.post("/api/auth/register", json={
            "email": "boss@example.com", "password": "secret1", "name": "Boss", "role": "admin",
        })
        assert_error(response, 403, "FORBIDDEN")

    async def test_register_instructor(self, client):
        response = await client.post("/api/auth/register", json={
            "email": "teach@example.com", "password": "secret1", "name": "Teach", "role": "instructor",
        })
        assert response.status_code == 201
        assert response.json()["data"]["user"]["role"] == UserRole.instructor.value

    async def test_login_wrong_password(self, client, student):
        response = await client.post("/api/auth/login", json={"email": student.email, "password": "wrong-one"})
        assert_error(response, 401, "INVALID_CREDENTIALS")

    async def test_login_unknown_email_looks_the_same(self, client):
        response = await client.post("/api/auth/login", json={"email": "ghost@example.com", "password": TEST_PASSWORD})
        assert_error(response, 401, "INVALID_CREDENTIALS")

    async def test_garbage_token(self, client):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert_error(response, 401, "UNAUTHORIZED")

    async def test_expired_token(self, client, student):
        from datetime import timedelta
        from learnlite.security.rbac import create_access_token

        token = create_access_token(student, expires_delta=timedelta(seconds=-5))
        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert_error(response, 401, "AUTH_EXPIRED")


class TestRoleBoundaries:

    async def test_student_cannot_create_course(self, client, student):
        response = await client.post("/api/courses", json={"title": "Mine"}, headers=auth_headers(student))
        assert_error(response, 403, "FORBIDDEN")

    async def test_user_admin_endpoints(self, client, admin, student):
        assert_error(await client.get("/api/users", headers=auth_headers(student)), 403, "FORBIDDEN")

        response = await client.get("/api/users", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 2

    async def test_user_can_update_self_but_not_role(self, client, student):
        response = await client.put(
            f"/api/users/{student.id}", json={"name": "Renamed"}, headers=auth_headers(student)
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Renamed"

        response = await client.put(
            f"/api/users/{student.id}", json={"role": "admin"}, headers=auth_headers(student)
        )
        assert_error(response, 400, "VALIDATION_ERROR")

    async def test_user_cannot_update_someone_else(self, client, student, instructor):
        response = await client.put(
            f"/api/users/{instructor.id}", json={"name": "Hijacked"}, headers=auth_headers(student)
        )
        assert_error(response, 403, "FORBIDDEN")

    async def test_admin_cannot_delete_self(self, client, admin):
        response = await client.delete(f"/api/users/{admin.id}", headers=auth_headers(admin))
        assert_error(response, 403, "FORBIDDEN")


class TestRequestSchemas:

    async def test_openapi_describes_request_bodies(self, client):
        schema = (await client.get("/openapi.json")).json()
        body = schema["paths"]["/api/enrollments"]["post"]["requestBody"]["content"]["application/json"]["schema"]
        assert body["$ref"].endswith("/EnrollmentCreate")

        enrollment = schema["components"]["schemas"]["EnrollmentCreate"]
        assert enrollment["required"] == ["courseId"]
        assert enrollment["properties"]["courseId"]["type"] == "integer"
        assert enrollment["properties"]["courseId"]["exclusiveMinimum"] == 0

        register = schema["components"]["schemas"]["UserRegister"]
        assert register["properties"]["email"]["format"] == "email"

    async def test_model_errors_use_body_keys(self, client, student):
        response = await client.post(
            "/api/progress/complete",
            json={"enrollmentId": "1", "completed": "yes"},
            headers=auth_headers(student),
        )
        error = assert_error(response, 400, "VALIDATION_ERROR")
        assert [item["field"] for item in error["fields"]] == ["enrollmentId", "lessonId", "completed"]
