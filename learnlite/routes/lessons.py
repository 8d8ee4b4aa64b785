"""
learnlite/routes/lessons.py
Lesson CRUD and reordering
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import get_db
from learnlite.errors import envelope
from learnlite.orm.user import User
from learnlite.schemas import LessonCreate, LessonReorder, LessonUpdate
from learnlite.security.rbac import get_current_user_optional, require_staff
from learnlite.services.lesson_service import LessonService

router = APIRouter(tags=["Lessons"])


@router.post("/courses/{course_id}/lessons", status_code=201)
async def create_lesson(
    course_id: int,
    payload: LessonCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    lesson = await LessonService.create_lesson(db, course_id, payload.model_dump(mode="json"), current_user)
    return envelope(lesson.to_dict())


@router.get("/courses/{course_id}/lessons")
async def list_lessons(
    course_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    lessons = await LessonService.list_lessons(db, course_id, current_user)
    return envelope([lesson.to_dict() for lesson in lessons])


@router.patch("/courses/{course_id}/lessons/reorder")
async def reorder_lessons(
    course_id: int,
    payload: LessonReorder,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """An empty list is accepted; the service checks it covers every lesson of the course."""
    lessons = await LessonService.reorder_lessons(db, course_id, payload.lesson_ids, current_user)
    return envelope([lesson.to_dict() for lesson in lessons])


@router.get("/lessons/{lesson_id}")
async def get_lesson(
    lesson_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    lesson = await LessonService.get_lesson(db, lesson_id, current_user)
    return envelope(lesson.to_dict())


@router.put("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: int,
    payload: LessonUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    changes = payload.model_dump(mode="json", exclude_unset=True)
    lesson = await LessonService.update_lesson(db, lesson_id, changes, current_user)
    return envelope(lesson.to_dict())


@router.delete("/lessons/{lesson_id}")
async def delete_lesson(
    lesson_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    await LessonService.delete_lesson(db, lesson_id, current_user)
    return envelope({"id": lesson_id, "deleted": True})
