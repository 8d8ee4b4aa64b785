"""
learnlite/services/lesson_service.py
Lessons and their dense 1..N ordering within a course

Every mutation that touches positions rewrites the affected siblings and
commits once, so readers never observe a partially applied ordering.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.errors import ErrorCode
from learnlite.exceptions import BusinessRuleError, NotFoundError
from learnlite.orm.lesson import Lesson
from learnlite.orm.user import User
from learnlite.services.course_service import CourseService

logger = logging.getLogger(__name__)


def _renumber(lessons: List[Lesson]) -> None:
    for index, lesson in enumerate(lessons, start=1):
        if lesson.position != index:
            lesson.position = index


class LessonService:

    @classmethod
    async def _ordered_lessons(cls, db: AsyncSession, course_id: int, lock: bool = False) -> List[Lesson]:
        stmt = (
            select(Lesson)
            .where(Lesson.course_id == course_id)
            .order_by(Lesson.position, Lesson.id)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def _get_lesson(cls, db: AsyncSession, lesson_id: int) -> Lesson:
        lesson = await db.get(Lesson, lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", ErrorCode.LESSON_NOT_FOUND)
        return lesson

    @classmethod
    async def create_lesson(cls, db: AsyncSession, course_id: int, data: Dict[str, Any], actor: User) -> Lesson:
        """
        Add a lesson to a course.

        Without a position the lesson is appended. With position p the lesson
        lands at p (clamped to the end) and later siblings shift down by one.
        """
        await CourseService.get_managed_course(db, course_id, actor)
        siblings = await cls._ordered_lessons(db, course_id, lock=True)

        lesson = Lesson(
            course_id=course_id,
            title=data["title"].strip(),
            video_url=data.get("video_url") or None,
            content_md=data.get("content_md"),
            position=len(siblings) + 1,
        )
        position = data.get("position")
        if position is not None and position <= len(siblings):
            siblings.insert(position - 1, lesson)
        else:
            siblings.append(lesson)
        _renumber(siblings)

        db.add(lesson)
        await db.commit()
        await db.refresh(lesson)
        logger.info(f"Lesson {lesson.id} created in course {course_id} at position {lesson.position}")
        return lesson

    @classmethod
    async def update_lesson(cls, db: AsyncSession, lesson_id: int, data: Dict[str, Any], actor: User) -> Lesson:
        lesson = await cls._get_lesson(db, lesson_id)
        await CourseService.get_managed_course(db, lesson.course_id, actor)

        if data.get("title") is not None:
            lesson.title = data["title"].strip()
        if "video_url" in data:
            lesson.video_url = data["video_url"] or None
        if "content_md" in data:
            lesson.content_md = data["content_md"]

        position = data.get("position")
        if position is not None and position != lesson.position:
            siblings = [s for s in await cls._ordered_lessons(db, lesson.course_id, lock=True) if s.id != lesson.id]
            siblings.insert(min(position, len(siblings) + 1) - 1, lesson)
            _renumber(siblings)

        await db.commit()
        await db.refresh(lesson)
        return lesson

    @classmethod
    async def delete_lesson(cls, db: AsyncSession, lesson_id: int, actor: User) -> None:
        """Delete a lesson and close the gap it leaves in the ordering."""
        lesson = await cls._get_lesson(db, lesson_id)
        course_id = lesson.course_id
        await CourseService.get_managed_course(db, course_id, actor)

        siblings = await cls._ordered_lessons(db, course_id, lock=True)
        await db.delete(lesson)
        _renumber([s for s in siblings if s.id != lesson_id])

        await db.commit()
        logger.info(f"Lesson {lesson_id} deleted from course {course_id}")

    @classmethod
    async def reorder_lessons(cls, db: AsyncSession, course_id: int, lesson_ids: List[int], actor: User) -> List[Lesson]:
        """
        Assign positions 1..N in the given order.

        lesson_ids must be exactly the course's lesson id set. Nothing is
        written when it is not.
        """
        await CourseService.get_managed_course(db, course_id, actor)
        lessons = await cls._ordered_lessons(db, course_id, lock=True)

        if len(lesson_ids) != len(lessons):
            raise BusinessRuleError(
                f"Lesson count mismatch: expected {len(lessons)} lessons",
                ErrorCode.LESSON_COUNT_MISMATCH,
            )
        by_id = {lesson.id: lesson for lesson in lessons}
        if set(lesson_ids) != set(by_id):
            raise BusinessRuleError(
                "Lesson IDs must match exactly the lessons of this course",
                ErrorCode.INVALID_LESSON_IDS,
            )

        ordered = [by_id[lesson_id] for lesson_id in lesson_ids]
        _renumber(ordered)
        await db.commit()
        logger.info(f"Reordered {len(ordered)} lessons in course {course_id}")
        return ordered

    @classmethod
    async def list_lessons(cls, db: AsyncSession, course_id: int, viewer: Optional[User]) -> List[Lesson]:
        await CourseService.get_visible_course(db, course_id, viewer)
        return await cls._ordered_lessons(db, course_id)

    @classmethod
    async def get_lesson(cls, db: AsyncSession, lesson_id: int, viewer: Optional[User]) -> Lesson:
        lesson = await cls._get_lesson(db, lesson_id)
        try:
            await CourseService.get_visible_course(db, lesson.course_id, viewer)
        except NotFoundError:
            raise NotFoundError("Lesson not found", ErrorCode.LESSON_NOT_FOUND)
        return lesson
