"""
learnlite/routes/quizzes.py
Quizzes, their questions and student submissions
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import get_db
from learnlite.errors import envelope
from learnlite.orm.user import User
from learnlite.schemas import QuestionCreate, QuestionUpdate, QuizCreate, QuizSubmission
from learnlite.security.rbac import get_current_user, require_staff
from learnlite.services.quiz_service import QuizService

router = APIRouter(tags=["Quizzes"])


@router.post("/courses/{course_id}/quizzes", status_code=201)
async def create_quiz(
    course_id: int,
    payload: QuizCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    quiz = await QuizService.create_quiz(db, course_id, payload.title, current_user)
    return envelope(quiz.to_dict(questions=[], include_answers=True))


@router.get("/courses/{course_id}/quizzes")
async def list_quizzes(
    course_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope(await QuizService.list_quizzes(db, course_id, current_user))


@router.get("/quizzes/{quiz_id}")
async def get_quiz(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope(await QuizService.get_quiz(db, quiz_id, current_user))


@router.post("/quizzes/{quiz_id}/submit", status_code=201)
async def submit_quiz(
    quiz_id: int,
    payload: QuizSubmission,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = await QuizService.submit_quiz(db, quiz_id, payload.answers, current_user.id)
    return envelope(result)


@router.get("/quizzes/{quiz_id}/submissions/me")
async def my_latest_submission(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    submission = await QuizService.get_latest_submission(db, quiz_id, current_user.id)
    return envelope(submission.to_dict() if submission else None)


@router.get("/quizzes/{quiz_id}/submissions")
async def list_submissions(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return envelope(await QuizService.list_submissions(db, quiz_id, current_user))


@router.post("/quizzes/{quiz_id}/questions", status_code=201)
async def create_question(
    quiz_id: int,
    payload: QuestionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    question = await QuizService.create_question(db, quiz_id, payload.model_dump(), current_user)
    return envelope(question.to_dict())


@router.put("/quizzes/{quiz_id}/questions/{question_id}")
async def update_question(
    quiz_id: int,
    question_id: int,
    payload: QuestionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    changes = payload.model_dump(exclude_none=True)
    question = await QuizService.update_question(db, quiz_id, question_id, changes, current_user)
    return envelope(question.to_dict())


@router.delete("/quizzes/{quiz_id}/questions/{question_id}")
async def delete_question(
    quiz_id: int,
    question_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    await QuizService.delete_question(db, quiz_id, question_id, current_user)
    return envelope({"id": question_id, "deleted": True})
