"""
learnlite/routes/progress.py
Lesson completion for students and course progress for instructors
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import get_db
from learnlite.errors import envelope
from learnlite.exceptions import ValidationError
from learnlite.orm.user import User
from learnlite.schemas import ProgressUpdate
from learnlite.security.rbac import get_current_user, require_staff
from learnlite.services.progress_service import ProgressService
from learnlite.validators import parse_positive_int

router = APIRouter(tags=["Progress"])


@router.post("/progress/complete")
async def mark_progress(
    payload: ProgressUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    progress = await ProgressService.mark_lesson_progress(
        db,
        user_id=current_user.id,
        enrollment_id=payload.enrollment_id,
        lesson_id=payload.lesson_id,
        completed=payload.completed,
    )
    return envelope(progress.to_dict())


@router.get("/progress/me")
async def my_progress(
    course_id: Optional[str] = Query(None, alias="courseId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    resolved = parse_positive_int(course_id)
    if resolved is None:
        raise ValidationError([{"field": "courseId", "message": "Course ID must be a positive integer"}])
    summary = await ProgressService.get_user_course_progress(db, current_user.id, resolved)
    return envelope(summary)


@router.get("/courses/{course_id}/progress")
async def course_progress(
    course_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    summary = await ProgressService.get_course_progress(db, course_id, current_user)
    return envelope(summary)
