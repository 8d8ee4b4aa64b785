"""
learnlite/tests/test_lessons.py
Lesson ordering: insertion, moves, reorder and deletion keep positions 1..N
"""
from sqlalchemy import select

from learnlite.orm.lesson import Lesson

from conftest import auth_headers


async def positions(session_factory, course_id):
    """[(id, position), ...] ordered by position."""
    async with session_factory() as session:
        result = await session.execute(
            select(Lesson.id, Lesson.position).where(Lesson.course_id == course_id).order_by(Lesson.position)
        )
        return [tuple(row) for row in result.all()]


class TestCreateLesson:

    async def test_append_and_insert(self, client, session_factory, factory, instructor):
        course = await factory.course(instructor)
        headers = auth_headers(instructor)

        first = (await client.post(f"/api/courses/{course.id}/lessons", json={"title": "One"}, headers=headers)).json()
        second = (await client.post(f"/api/courses/{course.id}/lessons", json={"title": "Two"}, headers=headers)).json()
        assert first["data"]["position"] == 1
        assert second["data"]["position"] == 2

        response = await client.post(
            f"/api/courses/{course.id}/lessons", json={"title": "Intro", "position": 1}, headers=headers
        )
        assert response.status_code == 201
        intro_id = response.json()["data"]["id"]

        assert await positions(session_factory, course.id) == [
            (intro_id, 1), (first["data"]["id"], 2), (second["data"]["id"], 3),
        ]

    async def test_position_past_the_end_appends(self, client, factory, instructor):
        course = await factory.course(instructor)
        await factory.lessons(course, 2)
        response = await client.post(
            f"/api/courses/{course.id}/lessons",
            json={"title": "Late", "position": 40},
            headers=auth_headers(instructor),
        )
        assert response.json()["data"]["position"] == 3

    async def test_invalid_video_url(self, client, factory, instructor):
        course = await factory.course(instructor)
        response = await client.post(
            f"/api/courses/{course.id}/lessons",
            json={"title": "Video", "video_url": "ftp://nope"},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 400
        assert response.json()["error"]["fields"][0]["field"] == "video_url"

    async def test_not_owner(self, client, factory, instructor, other_instructor):
        course = await factory.course(instructor)
        response = await client.post(
            f"/api/courses/{course.id}/lessons", json={"title": "Sneaky"}, headers=auth_headers(other_instructor)
        )
        assert response.status_code == 403


class TestReorder:

    async def test_permutation(self, client, session_factory, factory, instructor):
        course = await factory.course(instructor)
        a, b, c = await factory.lessons(course, 3)

        response = await client.patch(
            f"/api/courses/{course.id}/lessons/reorder",
            json={"lessonIds": [c.id, a.id, b.id]},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 200
        assert [item["id"] for item in response.json()["data"]] == [c.id, a.id, b.id]
        assert await positions(session_factory, course.id) == [(c.id, 1), (a.id, 2), (b.id, 3)]

    async def test_count_mismatch(self, client, session_factory, factory, instructor):
        course = await factory.course(instructor)
        a, b, c = await factory.lessons(course, 3)

        response = await client.patch(
            f"/api/courses/{course.id}/lessons/reorder",
            json={"lessonIds": [b.id, a.id]},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "LESSON_COUNT_MISMATCH"
        assert error["message"] == "Lesson count mismatch: expected 3 lessons"
        assert await positions(session_factory, course.id) == [(a.id, 1), (b.id, 2), (c.id, 3)]

    async def test_foreign_ids_change_nothing(self, client, session_factory, factory, instructor):
        course = await factory.course(instructor)
        other = await factory.course(instructor)
        a, b = await factory.lessons(course, 2)
        (foreign,) = await factory.lessons(other, 1)

        response = await client.patch(
            f"/api/courses/{course.id}/lessons/reorder",
            json={"lessonIds": [b.id, foreign.id]},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_LESSON_IDS"
        assert await positions(session_factory, course.id) == [(a.id, 1), (b.id, 2)]

    async def test_duplicate_ids_rejected(self, client, factory, instructor):
        course = await factory.course(instructor)
        a, b = await factory.lessons(course, 2)
        response = await client.patch(
            f"/api/courses/{course.id}/lessons/reorder",
            json={"lessonIds": [a.id, a.id]},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 400

    async def test_empty_course_accepts_empty_list(self, client, factory, instructor):
        course = await factory.course(instructor)
        response = await client.patch(
            f"/api/courses/{course.id}/lessons/reorder",
            json={"lessonIds": []},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 200, response.text
        assert response.json()["data"] == []

    async def test_empty_list_for_course_with_lessons(self, client, session_factory, factory, instructor):
        course = await factory.course(instructor)
        a, b = await factory.lessons(course, 2)
        response = await client.patch(
            f"/api/courses/{course.id}/lessons/reorder",
            json={"lessonIds": []},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "LESSON_COUNT_MISMATCH"
        assert await positions(session_factory, course.id) == [(a.id, 1), (b.id, 2)]


class TestUpdateAndDelete:

    async def test_move_lesson(self, client, session_factory, factory, instructor):
        course = await factory.course(instructor)
        a, b, c = await factory.lessons(course, 3)

        response = await client.put(
            f"/api/lessons/{c.id}", json={"position": 1}, headers=auth_headers(instructor)
        )
        assert response.status_code == 200
        assert await positions(session_factory, course.id) == [(c.id, 1), (a.id, 2), (b.id, 3)]

    async def test_delete_closes_gap(self, client, session_factory, factory, instructor):
        course = await factory.course(instructor)
        a, b, c = await factory.lessons(course, 3)

        response = await client.delete(f"/api/lessons/{b.id}", headers=auth_headers(instructor))
        assert response.status_code == 200
        assert response.json()["data"] == {"id": b.id, "deleted": True}
        assert await positions(session_factory, course.id) == [(a.id, 1), (c.id, 2)]

    async def test_delete_missing(self, client, instructor):
        response = await client.delete("/api/lessons/999", headers=auth_headers(instructor))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LESSON_NOT_FOUND"


class TestVisibility:

    async def test_draft_course_lessons_hidden_from_students(self, client, factory, instructor, student):
        course = await factory.course(instructor, published=False)
        (lesson,) = await factory.lessons(course, 1)

        response = await client.get(f"/api/courses/{course.id}/lessons", headers=auth_headers(student))
        assert response.status_code == 404

        response = await client.get(f"/api/lessons/{lesson.id}")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LESSON_NOT_FOUND"

        response = await client.get(f"/api/courses/{course.id}/lessons", headers=auth_headers(instructor))
        assert response.status_code == 200
        assert len(response.json()["data"]) == 1

    async def test_published_lessons_are_public(self, client, factory, instructor):
        course = await factory.course(instructor)
        await factory.lessons(course, 2)
        response = await client.get(f"/api/courses/{course.id}/lessons")
        assert [item["position"] for item in response.json()["data"]] == [1, 2]
