"""
learnlite/services/quiz_service.py
Quizzes, questions and scored submissions
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.errors import ErrorCode
from learnlite.exceptions import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from learnlite.orm.course import Course
from learnlite.orm.quiz import Quiz, QuizQuestion, QuizSubmission
from learnlite.orm.user import User, UserRole
from learnlite.services.course_service import CourseService, can_manage_course
from learnlite.services.enrollment_service import EnrollmentService

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def compute_score(correct: int, total: int) -> Decimal:
    """Percentage of correct answers rounded to two decimals; 0 for an empty quiz."""
    if total == 0:
        return Decimal("0.00")
    return (Decimal(100) * correct / total).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class QuizService:

    @classmethod
    async def _get_quiz_and_course(cls, db: AsyncSession, quiz_id: int) -> Tuple[Quiz, Course]:
        result = await db.execute(
            select(Quiz, Course).join(Course, Course.id == Quiz.course_id).where(Quiz.id == quiz_id)
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Quiz not found", ErrorCode.QUIZ_NOT_FOUND)
        return row[0], row[1]

    @classmethod
    async def _get_managed_quiz(cls, db: AsyncSession, quiz_id: int, actor: User) -> Quiz:
        quiz, course = await cls._get_quiz_and_course(db, quiz_id)
        if not can_manage_course(course, actor):
            raise ForbiddenError("You can only manage quizzes of your own courses", ErrorCode.FORBIDDEN)
        return quiz

    @classmethod
    async def _questions(cls, db: AsyncSession, quiz_id: int) -> List[QuizQuestion]:
        result = await db.execute(
            select(QuizQuestion).where(QuizQuestion.quiz_id == quiz_id).order_by(QuizQuestion.id)
        )
        return list(result.scalars().all())

    # ================= QUIZZES =================

    @classmethod
    async def create_quiz(cls, db: AsyncSession, course_id: int, title: str, actor: User) -> Quiz:
        await CourseService.get_managed_course(db, course_id, actor)
        quiz = Quiz(course_id=course_id, title=title.strip())
        db.add(quiz)
        await db.commit()
        await db.refresh(quiz)
        logger.info(f"Quiz {quiz.id} created in course {course_id}")
        return quiz

    @classmethod
    async def list_quizzes(cls, db: AsyncSession, course_id: int, viewer: User) -> List[Dict[str, Any]]:
        await CourseService.get_visible_course(db, course_id, viewer)
        result = await db.execute(
            select(Quiz, func.count(QuizQuestion.id))
            .outerjoin(QuizQuestion, QuizQuestion.quiz_id == Quiz.id)
            .where(Quiz.course_id == course_id)
            .group_by(Quiz.id)
            .order_by(Quiz.id)
        )
        items = []
        for quiz, question_count in result.all():
            item = quiz.to_dict()
            item["question_count"] = question_count
            items.append(item)
        return items

    @classmethod
    async def get_quiz(cls, db: AsyncSession, quiz_id: int, viewer: User) -> Dict[str, Any]:
        """
        Quiz with its questions.

        Only the course owner and admins see correct_index. Quizzes of an
        unpublished course do not exist for anyone else.
        """
        quiz, course = await cls._get_quiz_and_course(db, quiz_id)
        manages = can_manage_course(course, viewer)
        if not course.published and not manages:
            raise NotFoundError("Quiz not found", ErrorCode.QUIZ_NOT_FOUND)
        questions = await cls._questions(db, quiz_id)
        return quiz.to_dict(questions=questions, include_answers=manages)

    # ================= QUESTIONS =================

    @classmethod
    async def create_question(cls, db: AsyncSession, quiz_id: int, data: Dict[str, Any], actor: User) -> QuizQuestion:
        await cls._get_managed_quiz(db, quiz_id, actor)
        question = QuizQuestion(
            quiz_id=quiz_id,
            prompt=data["prompt"].strip(),
            choices=[choice.strip() for choice in data["choices"]],
            correct_index=data["correct_index"],
        )
        db.add(question)
        await db.commit()
        await db.refresh(question)
        return question

    @classmethod
    async def _get_question(cls, db: AsyncSession, quiz_id: int, question_id: int) -> QuizQuestion:
        question = await db.get(QuizQuestion, question_id)
        if question is None or question.quiz_id != quiz_id:
            raise NotFoundError("Question not found", ErrorCode.QUESTION_NOT_FOUND)
        return question

    @classmethod
    async def update_question(
        cls,
        db: AsyncSession,
        quiz_id: int,
        question_id: int,
        data: Dict[str, Any],
        actor: User,
    ) -> QuizQuestion:
        await cls._get_managed_quiz(db, quiz_id, actor)
        question = await cls._get_question(db, quiz_id, question_id)

        choices = [c.strip() for c in data["choices"]] if "choices" in data else list(question.choices)
        correct_index = data.get("correct_index", question.correct_index)
        if not 0 <= correct_index < len(choices):
            raise ValidationError([{
                "field": "correct_index",
                "message": f"Correct index must be between 0 and {len(choices) - 1}",
            }])

        if "prompt" in data:
            question.prompt = data["prompt"].strip()
        question.choices = choices
        question.correct_index = correct_index
        await db.commit()
        await db.refresh(question)
        return question

    @classmethod
    async def delete_question(cls, db: AsyncSession, quiz_id: int, question_id: int, actor: User) -> None:
        await cls._get_managed_quiz(db, quiz_id, actor)
        question = await cls._get_question(db, quiz_id, question_id)
        await db.delete(question)
        await db.commit()

    # ================= SUBMISSIONS =================

    @classmethod
    async def submit_quiz(cls, db: AsyncSession, quiz_id: int, answers: List[int], user_id: int) -> Dict[str, Any]:
        """
        Grade and store an attempt.

        Raises:
            NotFoundError: QUIZ_NOT_FOUND
            ForbiddenError: FORBIDDEN when the course is unpublished,
                NOT_ENROLLED without an active or completed enrollment
            BusinessRuleError: INVALID_ANSWERS_LENGTH, nothing is stored
        """
        quiz, course = await cls._get_quiz_and_course(db, quiz_id)
        if not course.published:
            raise ForbiddenError("Course is not published", ErrorCode.FORBIDDEN)
        if not await EnrollmentService.is_enrolled(db, user_id, course.id):
            raise ForbiddenError("You must be enrolled in this course", ErrorCode.NOT_ENROLLED)

        questions = await cls._questions(db, quiz_id)
        if len(answers) != len(questions):
            raise BusinessRuleError(
                f"Expected {len(questions)} answers, got {len(answers)}",
                ErrorCode.INVALID_ANSWERS_LENGTH,
            )

        graded = [
            {"id": question.id, "correct": answer == question.correct_index}
            for question, answer in zip(questions, answers)
        ]
        correct = sum(1 for item in graded if item["correct"])
        score = compute_score(correct, len(questions))

        submission = QuizSubmission(quiz_id=quiz_id, user_id=user_id, answers=list(answers), score=score)
        db.add(submission)
        await db.commit()
        await db.refresh(submission)
        logger.info(f"User {user_id} scored {score} on quiz {quiz_id}")

        return {
            "submissionId": submission.id,
            "total": len(questions),
            "correct": correct,
            "score": float(score),
            "questions": graded,
        }

    @classmethod
    async def get_latest_submission(cls, db: AsyncSession, quiz_id: int, user_id: int) -> Optional[QuizSubmission]:
        await cls._get_quiz_and_course(db, quiz_id)
        result = await db.execute(
            select(QuizSubmission)
            .where(QuizSubmission.quiz_id == quiz_id, QuizSubmission.user_id == user_id)
            .order_by(QuizSubmission.created_at.desc(), QuizSubmission.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @classmethod
    async def list_submissions(cls, db: AsyncSession, quiz_id: int, requester: User) -> List[Dict[str, Any]]:
        """Every attempt on a quiz, newest first. Course owner or admin only."""
        quiz, course = await cls._get_quiz_and_course(db, quiz_id)
        if requester.role != UserRole.admin and not can_manage_course(course, requester):
            raise ForbiddenError("You can only view submissions for your own courses", ErrorCode.FORBIDDEN)

        result = await db.execute(
            select(QuizSubmission, User)
            .join(User, User.id == QuizSubmission.user_id)
            .where(QuizSubmission.quiz_id == quiz.id)
            .order_by(QuizSubmission.created_at.desc(), QuizSubmission.id.desc())
        )
        items = []
        for submission, student in result.all():
            item = submission.to_dict()
            item["user"] = student.to_summary()
            items.append(item)
        return items
