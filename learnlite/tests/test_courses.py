"""
learnlite/tests/test_courses.py
Course catalogue visibility, ownership and deletion
"""
from sqlalchemy import func, select

from learnlite.orm.enrollment import Enrollment
from learnlite.orm.lesson import Lesson

from conftest import auth_headers


class TestCatalogue:

    async def test_drafts_visible_to_owner_and_admin_only(
        self, client, factory, admin, instructor, other_instructor, student
    ):
        await factory.course(instructor, title="Live")
        await factory.course(instructor, published=False, title="Draft")

        async def titles(headers=None):
            response = await client.get("/api/courses", headers=headers or {})
            return sorted(item["title"] for item in response.json()["data"])

        assert await titles() == ["Live"]
        assert await titles(auth_headers(student)) == ["Live"]
        assert await titles(auth_headers(other_instructor)) == ["Live"]
        assert await titles(auth_headers(instructor)) == ["Draft", "Live"]
        assert await titles(auth_headers(admin)) == ["Draft", "Live"]

    async def test_search_and_instructor_filter(self, client, factory, instructor, other_instructor):
        await factory.course(instructor, title="Intro to Python")
        await factory.course(other_instructor, title="Advanced Python")
        await factory.course(other_instructor, title="Cooking")

        response = await client.get("/api/courses", params={"search": "python"})
        assert response.json()["pagination"]["total"] == 2

        response = await client.get(
            "/api/courses", params={"search": "python", "instructorId": str(other_instructor.id)}
        )
        data = response.json()["data"]
        assert [item["title"] for item in data] == ["Advanced Python"]
        assert data[0]["instructor"] == {"id": other_instructor.id, "name": other_instructor.name}

    async def test_draft_reads_as_missing(self, client, factory, instructor, student):
        course = await factory.course(instructor, published=False)
        response = await client.get(f"/api/courses/{course.id}", headers=auth_headers(student))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "COURSE_NOT_FOUND"


class TestManagement:

    async def test_create_normalizes_price_and_starts_unpublished(self, client, instructor):
        response = await client.post(
            "/api/courses",
            json={"title": "  Statistics ", "price_cents": 19.99, "published": True},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        assert data["title"] == "Statistics"
        assert data["price_cents"] == 1999
        assert data["published"] is False
        assert data["instructor_id"] == instructor.id

    async def test_admin_assigns_instructor(self, client, admin, instructor, student):
        response = await client.post(
            "/api/courses",
            json={"title": "Assigned", "price_cents": 0, "instructor_id": instructor.id},
            headers=auth_headers(admin),
        )
        assert response.json()["data"]["instructor_id"] == instructor.id

        response = await client.post(
            "/api/courses",
            json={"title": "Bad owner", "price_cents": 0, "instructor_id": student.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INSTRUCTOR"

    async def test_update_rules(self, client, factory, instructor, other_instructor):
        course = await factory.course(instructor)

        response = await client.put(
            f"/api/courses/{course.id}", json={"title": "Renamed"}, headers=auth_headers(instructor)
        )
        assert response.json()["data"]["title"] == "Renamed"

        response = await client.put(
            f"/api/courses/{course.id}", json={"published": False}, headers=auth_headers(instructor)
        )
        assert response.status_code == 400

        response = await client.put(
            f"/api/courses/{course.id}",
            json={"instructor_id": other_instructor.id},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 403

        response = await client.put(
            f"/api/courses/{course.id}", json={"title": "Mine now"}, headers=auth_headers(other_instructor)
        )
        assert response.status_code == 403

    async def test_admin_delete_cascades(self, client, session_factory, factory, admin, instructor, student):
        course = await factory.course(instructor)
        await factory.lessons(course, 2)
        await factory.enrollment(student, course)

        response = await client.delete(f"/api/courses/{course.id}", headers=auth_headers(instructor))
        assert response.status_code == 403

        response = await client.delete(f"/api/courses/{course.id}", headers=auth_headers(admin))
        assert response.status_code == 200

        async with session_factory() as session:
            lessons = (await session.execute(select(func.count(Lesson.id)))).scalar()
            enrollments = (await session.execute(select(func.count(Enrollment.id)))).scalar()
        assert (lessons, enrollments) == (0, 0)
