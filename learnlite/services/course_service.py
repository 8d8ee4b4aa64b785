"""
learnlite/services/course_service.py
Course catalogue, ownership checks and publishing
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import fetch_page
from learnlite.errors import ErrorCode
from learnlite.exceptions import BusinessRuleError, ForbiddenError, NotFoundError
from learnlite.orm.course import Course
from learnlite.orm.user import User, UserRole

logger = logging.getLogger(__name__)


def can_manage_course(course: Course, user: Optional[User]) -> bool:
    """Admins manage every course; instructors only the ones they own."""
    if user is None:
        return False
    if user.role == UserRole.admin:
        return True
    return user.role == UserRole.instructor and course.is_owned_by(user.id)


def can_view_course(course: Course, user: Optional[User]) -> bool:
    return course.published or can_manage_course(course, user)


class CourseService:

    @classmethod
    async def get_course(cls, db: AsyncSession, course_id: int) -> Course:
        course = await db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)
        return course

    @classmethod
    async def get_managed_course(
        cls,
        db: AsyncSession,
        course_id: int,
        actor: User,
        code: str = ErrorCode.FORBIDDEN,
        message: str = "You can only manage your own courses",
    ) -> Course:
        """Load a course the actor may modify, or raise NotFound / Forbidden."""
        course = await cls.get_course(db, course_id)
        if not can_manage_course(course, actor):
            raise ForbiddenError(message, code)
        return course

    @classmethod
    async def get_visible_course(cls, db: AsyncSession, course_id: int, viewer: Optional[User]) -> Course:
        """Unpublished courses are reported as missing to anyone who cannot manage them."""
        course = await cls.get_course(db, course_id)
        if not can_view_course(course, viewer):
            raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)
        return course

    @classmethod
    async def list_courses(
        cls,
        db: AsyncSession,
        viewer: Optional[User],
        page: int,
        limit: int,
        search: Optional[str] = None,
        instructor_id: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        stmt = select(Course, User).join(User, User.id == Course.instructor_id)

        if viewer is None or viewer.role == UserRole.student:
            stmt = stmt.where(Course.published.is_(True))
        elif viewer.role == UserRole.instructor:
            stmt = stmt.where(or_(Course.published.is_(True), Course.instructor_id == viewer.id))

        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Course.title.ilike(pattern), Course.description.ilike(pattern)))
        if instructor_id is not None:
            stmt = stmt.where(Course.instructor_id == instructor_id)

        stmt = stmt.order_by(Course.created_at.desc(), Course.id.desc())
        rows, total = await fetch_page(db, stmt, page, limit)
        return [course.to_dict(instructor=instructor) for course, instructor in rows], total

    @classmethod
    async def _resolve_instructor(cls, db: AsyncSession, instructor_id: int) -> int:
        instructor = await db.get(User, instructor_id)
        if instructor is None or instructor.role not in (UserRole.instructor, UserRole.admin):
            raise BusinessRuleError(
                "instructor_id must reference an instructor or admin",
                ErrorCode.INVALID_INSTRUCTOR,
            )
        return instructor.id

    @classmethod
    async def create_course(cls, db: AsyncSession, data: Dict[str, Any], actor: User) -> Course:
        """
        Create an unpublished course.

        Instructors always own what they create. Admins may assign another
        instructor through instructor_id and own the course otherwise.
        """
        instructor_id = actor.id
        if actor.role == UserRole.admin and data.get("instructor_id") is not None:
            instructor_id = await cls._resolve_instructor(db, data["instructor_id"])

        course = Course(
            title=data["title"].strip(),
            description=data.get("description") or "",
            price_cents=data["price_cents"],
            published=False,
            instructor_id=instructor_id,
        )
        db.add(course)
        await db.commit()
        await db.refresh(course)
        logger.info(f"Course {course.id} created by user {actor.id}")
        return course

    @classmethod
    async def update_course(cls, db: AsyncSession, course_id: int, data: Dict[str, Any], actor: User) -> Course:
        course = await cls.get_managed_course(db, course_id, actor)

        if data.get("instructor_id") is not None:
            if actor.role != UserRole.admin:
                raise ForbiddenError("Only admins can reassign a course", ErrorCode.FORBIDDEN)
            course.instructor_id = await cls._resolve_instructor(db, data["instructor_id"])
        if data.get("title") is not None:
            course.title = data["title"].strip()
        if data.get("description") is not None:
            course.description = data["description"]
        if data.get("price_cents") is not None:
            course.price_cents = data["price_cents"]

        await db.commit()
        await db.refresh(course)
        return course

    @classmethod
    async def publish_course(cls, db: AsyncSession, course_id: int, actor: User) -> Tuple[Course, bool]:
        """Flip published on. Returns the course and whether it changed."""
        course = await cls.get_managed_course(db, course_id, actor)
        if course.published:
            return course, False

        course.published = True
        await db.commit()
        await db.refresh(course)
        logger.info(f"Course {course.id} published by user {actor.id}")
        return course, True

    @classmethod
    async def delete_course(cls, db: AsyncSession, course_id: int) -> None:
        course = await cls.get_course(db, course_id)
        await db.delete(course)
        await db.commit()
        logger.info(f"Course {course_id} deleted")
