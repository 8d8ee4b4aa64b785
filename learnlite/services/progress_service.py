"""
learnlite/services/progress_service.py
Lesson completion tracking per enrollment
"""
import logging
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.errors import ErrorCode
from learnlite.exceptions import BusinessRuleError, ForbiddenError, NotFoundError
from learnlite.orm.base import utcnow
from learnlite.orm.enrollment import Enrollment, EnrollmentStatus
from learnlite.orm.lesson import Lesson
from learnlite.orm.lesson_progress import LessonProgress
from learnlite.orm.user import User
from learnlite.services.course_service import CourseService, can_manage_course

logger = logging.getLogger(__name__)


def completion_percent(completed: int, total: int) -> int:
    if total == 0:
        return 0
    return round(100 * completed / total)


class ProgressService:

    @classmethod
    async def count_lessons(cls, db: AsyncSession, course_id: int) -> int:
        result = await db.execute(
            select(func.count(Lesson.id)).where(Lesson.course_id == course_id)
        )
        return result.scalar() or 0

    @classmethod
    async def count_completed_lessons(cls, db: AsyncSession, enrollment_id: int, course_id: int) -> int:
        """Completed progress rows of an enrollment, restricted to lessons of the course."""
        result = await db.execute(
            select(func.count(LessonProgress.id))
            .join(Lesson, Lesson.id == LessonProgress.lesson_id)
            .where(
                LessonProgress.enrollment_id == enrollment_id,
                LessonProgress.completed.is_(True),
                Lesson.course_id == course_id,
            )
        )
        return result.scalar() or 0

    @classmethod
    async def mark_lesson_progress(
        cls,
        db: AsyncSession,
        user_id: int,
        enrollment_id: int,
        lesson_id: int,
        completed: bool,
    ) -> LessonProgress:
        """
        Record (or clear) completion of a lesson.

        Idempotent per (enrollment, lesson): completed_at is set the first time
        the lesson is completed and cleared when it is marked incomplete.
        """
        enrollment = await db.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found", ErrorCode.ENROLLMENT_NOT_FOUND)
        if enrollment.user_id != user_id:
            raise ForbiddenError("You can only track progress on your own enrollments", ErrorCode.FORBIDDEN)
        if enrollment.status == EnrollmentStatus.refunded:
            raise BusinessRuleError("Enrollment is not active", ErrorCode.ENROLLMENT_NOT_ACTIVE)

        lesson = await db.get(Lesson, lesson_id)
        if lesson is None or lesson.course_id != enrollment.course_id:
            raise NotFoundError("Lesson not found in this course", ErrorCode.LESSON_NOT_FOUND)

        progress = await cls._find(db, enrollment_id, lesson_id)
        if progress is None:
            progress = LessonProgress(enrollment_id=enrollment_id, lesson_id=lesson_id, completed=False)
            db.add(progress)
            try:
                await db.flush()
            except IntegrityError:
                # a concurrent request created the row first
                await db.rollback()
                progress = await cls._find(db, enrollment_id, lesson_id)

        if completed and not progress.completed:
            progress.completed = True
            progress.completed_at = utcnow()
        elif not completed:
            progress.completed = False
            progress.completed_at = None

        await db.commit()
        await db.refresh(progress)
        return progress

    @classmethod
    async def _find(cls, db: AsyncSession, enrollment_id: int, lesson_id: int):
        result = await db.execute(
            select(LessonProgress).where(
                LessonProgress.enrollment_id == enrollment_id,
                LessonProgress.lesson_id == lesson_id,
            )
        )
        return result.scalar_one_or_none()

    @classmethod
    async def get_user_course_progress(cls, db: AsyncSession, user_id: int, course_id: int) -> Dict[str, Any]:
        """Per-lesson completion of the caller's enrollment in a course."""
        await CourseService.get_course(db, course_id)

        result = await db.execute(
            select(Enrollment).where(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
        )
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise NotFoundError("Enrollment not found", ErrorCode.ENROLLMENT_NOT_FOUND)

        lessons_result = await db.execute(
            select(Lesson, LessonProgress)
            .outerjoin(
                LessonProgress,
                (LessonProgress.lesson_id == Lesson.id)
                & (LessonProgress.enrollment_id == enrollment.id),
            )
            .where(Lesson.course_id == course_id)
            .order_by(Lesson.position, Lesson.id)
        )

        lessons: List[Dict[str, Any]] = []
        for lesson, progress in lessons_result.all():
            lessons.append({
                "lesson_id": lesson.id,
                "title": lesson.title,
                "position": lesson.position,
                "completed": bool(progress and progress.completed),
                "completed_at": progress.completed_at.isoformat() if progress and progress.completed_at else None,
            })

        completed = sum(1 for item in lessons if item["completed"])
        return {
            "enrollmentId": enrollment.id,
            "courseId": course_id,
            "lessonsCompleted": completed,
            "totalLessons": len(lessons),
            "percent": completion_percent(completed, len(lessons)),
            "lessons": lessons,
        }

    @classmethod
    async def get_course_progress(cls, db: AsyncSession, course_id: int, requester: User) -> List[Dict[str, Any]]:
        """Completion summary of every enrolled student. Course owner or admin only."""
        course = await CourseService.get_course(db, course_id)
        if not can_manage_course(course, requester):
            raise ForbiddenError("You can only view progress for your own courses", ErrorCode.FORBIDDEN)

        total = await cls.count_lessons(db, course_id)

        completed_counts = (
            select(
                LessonProgress.enrollment_id.label("enrollment_id"),
                func.count(LessonProgress.id).label("completed"),
            )
            .join(Lesson, Lesson.id == LessonProgress.lesson_id)
            .where(Lesson.course_id == course_id, LessonProgress.completed.is_(True))
            .group_by(LessonProgress.enrollment_id)
            .subquery()
        )
        result = await db.execute(
            select(Enrollment, User, completed_counts.c.completed)
            .join(User, User.id == Enrollment.user_id)
            .outerjoin(completed_counts, completed_counts.c.enrollment_id == Enrollment.id)
            .where(Enrollment.course_id == course_id)
            .order_by(User.name, User.id)
        )

        summary = []
        for enrollment, student, completed in result.all():
            completed = completed or 0
            summary.append({
                "enrollmentId": enrollment.id,
                "status": enrollment.status.value,
                "user": student.to_summary(),
                "completedCount": completed,
                "totalLessons": total,
                "percent": completion_percent(completed, total),
            })
        return summary
