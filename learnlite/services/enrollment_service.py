"""
learnlite/services/enrollment_service.py
Student enrollments and their status transitions

At most one enrollment exists per (user, course). Duplicates are detected
by inserting and translating the unique-constraint violation, never by a
pre-check, so two concurrent requests cannot both succeed.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import fetch_page, is_unique_violation
from learnlite.errors import ErrorCode
from learnlite.exceptions import BusinessRuleError, ConflictError, NotFoundError
from learnlite.orm.course import Course
from learnlite.orm.enrollment import Enrollment, EnrollmentStatus, ENROLLED_STATUSES
from learnlite.orm.user import User, UserRole

logger = logging.getLogger(__name__)


class EnrollmentService:

    @classmethod
    async def create_enrollment(cls, db: AsyncSession, user_id: int, course_id: int) -> Enrollment:
        """
        Enroll a user into a published course.

        Raises:
            NotFoundError: COURSE_NOT_FOUND
            BusinessRuleError: COURSE_NOT_PUBLISHED
            ConflictError: ALREADY_ENROLLED
        """
        course = await db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)
        if not course.published:
            raise BusinessRuleError("Course is not published", ErrorCode.COURSE_NOT_PUBLISHED)

        enrollment = Enrollment(user_id=user_id, course_id=course_id, status=EnrollmentStatus.active)
        db.add(enrollment)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise ConflictError("Already enrolled in this course", ErrorCode.ALREADY_ENROLLED)
            raise
        await db.refresh(enrollment)
        logger.info(f"User {user_id} enrolled in course {course_id} (enrollment {enrollment.id})")
        return enrollment

    @classmethod
    async def get_user_enrollments(
        cls,
        db: AsyncSession,
        user_id: int,
        page: int,
        limit: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        stmt = (
            select(Enrollment, Course)
            .join(Course, Course.id == Enrollment.course_id)
            .where(Enrollment.user_id == user_id)
            .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
        )
        rows, total = await fetch_page(db, stmt, page, limit)
        items = []
        for enrollment, course in rows:
            item = enrollment.to_dict()
            item["course"] = course.to_summary()
            items.append(item)
        return items, total

    @classmethod
    async def can_view_course_enrollments(
        cls,
        db: AsyncSession,
        course_id: int,
        user_id: int,
        role: UserRole,
    ) -> bool:
        """Admins see every roster; instructors only those of courses they own."""
        if role == UserRole.admin:
            return True
        if role != UserRole.instructor:
            return False
        course = await db.get(Course, course_id)
        return course is not None and course.instructor_id == user_id

    @classmethod
    async def get_course_enrollments(
        cls,
        db: AsyncSession,
        course_id: int,
        page: int,
        limit: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Roster of a course. Callers authorize with can_view_course_enrollments first."""
        stmt = (
            select(Enrollment, User)
            .join(User, User.id == Enrollment.user_id)
            .where(Enrollment.course_id == course_id)
            .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
        )
        rows, total = await fetch_page(db, stmt, page, limit)
        items = []
        for enrollment, student in rows:
            item = enrollment.to_dict()
            item["student"] = student.to_summary()
            items.append(item)
        return items, total

    @classmethod
    async def update_enrollment_status(
        cls,
        db: AsyncSession,
        enrollment_id: int,
        status: EnrollmentStatus,
    ) -> Optional[Enrollment]:
        """Set the status. Returns None when the enrollment does not exist."""
        enrollment = await db.get(Enrollment, enrollment_id)
        if enrollment is None:
            return None

        previous = enrollment.status
        enrollment.status = status
        await db.commit()
        await db.refresh(enrollment)
        logger.info(f"Enrollment {enrollment_id} status {previous.value} -> {status.value}")
        return enrollment

    @classmethod
    async def find_enrollment(cls, db: AsyncSession, user_id: int, course_id: int) -> Optional[Enrollment]:
        result = await db.execute(
            select(Enrollment).where(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
            )
        )
        return result.scalar_one_or_none()

    @classmethod
    async def is_enrolled(cls, db: AsyncSession, user_id: int, course_id: int) -> bool:
        """True for an active or completed enrollment."""
        result = await db.execute(
            select(Enrollment.id).where(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
                Enrollment.status.in_(ENROLLED_STATUSES),
            )
        )
        return result.first() is not None
