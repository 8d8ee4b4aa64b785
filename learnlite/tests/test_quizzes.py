"""
learnlite/tests/test_quizzes.py
Quiz authoring, answer visibility and graded submissions
"""
from decimal import Decimal

from sqlalchemy import func, select

from learnlite.orm.enrollment import EnrollmentStatus
from learnlite.orm.quiz import QuizSubmission
from learnlite.services.quiz_service import compute_score

from conftest import auth_headers

QUESTIONS = [
    ("2 + 2", ["3", "4", "5"], 1),
    ("Capital of France", ["Paris", "Rome"], 0),
    ("Largest planet", ["Mars", "Venus", "Jupiter"], 2),
]


async def submission_count(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(QuizSubmission.id)))).scalar()


def test_compute_score():
    assert compute_score(0, 0) == Decimal("0.00")
    assert compute_score(1, 3) == Decimal("33.33")
    assert compute_score(2, 3) == Decimal("66.67")
    assert compute_score(1, 8) == Decimal("12.50")
    assert compute_score(3, 3) == Decimal("100.00")


class TestAuthoring:

    async def test_create_quiz_and_questions(self, client, factory, instructor):
        course = await factory.course(instructor)
        headers = auth_headers(instructor)

        response = await client.post(f"/api/courses/{course.id}/quizzes", json={"title": "Checkpoint"}, headers=headers)
        assert response.status_code == 201
        quiz_id = response.json()["data"]["id"]

        response = await client.post(
            f"/api/quizzes/{quiz_id}/questions",
            json={"prompt": "Pick B", "choices": ["A", "B"], "correct_index": 1},
            headers=headers,
        )
        assert response.status_code == 201
        question_id = response.json()["data"]["id"]

        response = await client.get(f"/api/courses/{course.id}/quizzes", headers=headers)
        assert response.json()["data"][0]["question_count"] == 1

        response = await client.put(
            f"/api/quizzes/{quiz_id}/questions/{question_id}", json={"correct_index": 5}, headers=headers
        )
        assert response.status_code == 400

        response = await client.delete(f"/api/quizzes/{quiz_id}/questions/{question_id}", headers=headers)
        assert response.status_code == 200

        response = await client.delete(f"/api/quizzes/{quiz_id}/questions/{question_id}", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "QUESTION_NOT_FOUND"

    async def test_correct_index_out_of_range(self, client, factory, instructor):
        course = await factory.course(instructor)
        quiz, _ = await factory.quiz(course)
        response = await client.post(
            f"/api/quizzes/{quiz.id}/questions",
            json={"prompt": "?", "choices": ["only"], "correct_index": 1},
            headers=auth_headers(instructor),
        )
        assert response.status_code == 400

    async def test_other_instructor_cannot_author(self, client, factory, instructor, other_instructor):
        course = await factory.course(instructor)
        quiz, _ = await factory.quiz(course)
        response = await client.post(
            f"/api/quizzes/{quiz.id}/questions",
            json={"prompt": "?", "choices": ["a", "b"], "correct_index": 0},
            headers=auth_headers(other_instructor),
        )
        assert response.status_code == 403


class TestAnswerVisibility:

    async def test_students_never_see_answers(self, client, factory, instructor, student):
        course = await factory.course(instructor)
        quiz, _ = await factory.quiz(course, QUESTIONS)

        response = await client.get(f"/api/quizzes/{quiz.id}", headers=auth_headers(student))
        assert response.status_code == 200
        questions = response.json()["data"]["questions"]
        assert len(questions) == 3
        assert all("correct_index" not in question for question in questions)

        response = await client.get(f"/api/quizzes/{quiz.id}", headers=auth_headers(instructor))
        assert [q["correct_index"] for q in response.json()["data"]["questions"]] == [1, 0, 2]

    async def test_draft_quiz_is_missing_for_students(self, client, factory, instructor, student):
        course = await factory.course(instructor, published=False)
        quiz, _ = await factory.quiz(course, QUESTIONS)
        response = await client.get(f"/api/quizzes/{quiz.id}", headers=auth_headers(student))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "QUIZ_NOT_FOUND"


class TestSubmissions:

    async def test_graded_submission(self, client, session_factory, factory, instructor, student):
        course = await factory.course(instructor)
        quiz, questions = await factory.quiz(course, QUESTIONS)
        await factory.enrollment(student, course)

        response = await client.post(
            f"/api/quizzes/{quiz.id}/submit", json={"answers": [1, 1, 2]}, headers=auth_headers(student)
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        assert data["total"] == 3
        assert data["correct"] == 2
        assert data["score"] == 66.67
        assert data["questions"] == [
            {"id": questions[0].id, "correct": True},
            {"id": questions[1].id, "correct": False},
            {"id": questions[2].id, "correct": True},
        ]

        response = await client.get(f"/api/quizzes/{quiz.id}/submissions/me", headers=auth_headers(student))
        latest = response.json()["data"]
        assert latest["id"] == data["submissionId"]
        assert latest["answers"] == [1, 1, 2]
        assert latest["score"] == 66.67

        response = await client.get(f"/api/quizzes/{quiz.id}/submissions", headers=auth_headers(instructor))
        assert response.json()["data"][0]["user"]["id"] == student.id
        assert await submission_count(session_factory) == 1

    async def test_wrong_answer_count_stores_nothing(self, client, session_factory, factory, instructor, student):
        course = await factory.course(instructor)
        quiz, _ = await factory.quiz(course, QUESTIONS)
        await factory.enrollment(student, course)

        response = await client.post(
            f"/api/quizzes/{quiz.id}/submit", json={"answers": [1, 0]}, headers=auth_headers(student)
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ANSWERS_LENGTH"
        assert await submission_count(session_factory) == 0

    async def test_requires_enrollment(self, client, factory, instructor, student):
        course = await factory.course(instructor)
        quiz, _ = await factory.quiz(course, QUESTIONS)

        response = await client.post(
            f"/api/quizzes/{quiz.id}/submit", json={"answers": [1, 0, 2]}, headers=auth_headers(student)
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_ENROLLED"

    async def test_refunded_students_cannot_submit(self, client, factory, instructor, student):
        course = await factory.course(instructor)
        quiz, _ = await factory.quiz(course, QUESTIONS)
        await factory.enrollment(student, course, status=EnrollmentStatus.refunded)

        response = await client.post(
            f"/api/quizzes/{quiz.id}/submit", json={"answers": [1, 0, 2]}, headers=auth_headers(student)
        )
        assert response.status_code == 403

    async def test_unknown_quiz(self, client, student):
        response = await client.post("/api/quizzes/999/submit", json={"answers": []}, headers=auth_headers(student))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "QUIZ_NOT_FOUND"

    async def test_no_latest_submission(self, client, factory, instructor, student):
        course = await factory.course(instructor)
        quiz, _ = await factory.quiz(course, QUESTIONS)
        response = await client.get(f"/api/quizzes/{quiz.id}/submissions/me", headers=auth_headers(student))
        assert response.status_code == 200
        assert response.json()["data"] is None
