"""
learnlite/routes/courses.py
Course catalogue and course management
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import get_db
from learnlite.errors import envelope, paginated
from learnlite.orm.user import User
from learnlite.schemas import CourseCreate, CourseUpdate
from learnlite.security.rbac import get_current_user_optional, require_admin, require_staff
from learnlite.services.course_service import CourseService
from learnlite.services.outbox import EventTopic, publish
from learnlite.validators import clamp_pagination, parse_positive_int, sanitize_search

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get("")
async def list_courses(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    instructor_id: Optional[str] = Query(None, alias="instructorId"),
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Published courses for everyone. Instructors also see their own drafts,
    admins see everything.
    """
    page_no, page_size = clamp_pagination(page, limit)
    items, total = await CourseService.list_courses(
        db, current_user, page_no, page_size,
        search=sanitize_search(search),
        instructor_id=parse_positive_int(instructor_id),
    )
    return paginated(items, total, page_no, page_size)


@router.get("/{course_id}")
async def get_course(
    course_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    course = await CourseService.get_visible_course(db, course_id, current_user)
    return envelope(course.to_dict())


@router.post("", status_code=201)
async def create_course(
    payload: CourseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    course = await CourseService.create_course(db, payload.model_dump(), current_user)
    return envelope(course.to_dict())


@router.put("/{course_id}")
async def update_course(
    course_id: int,
    payload: CourseUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    changes = payload.model_dump(exclude_unset=True, exclude={"published"})
    course = await CourseService.update_course(db, course_id, changes, current_user)
    return envelope(course.to_dict())


@router.post("/{course_id}/publish")
async def publish_course(
    course_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """One-way: publishing an already published course changes nothing."""
    course, changed = await CourseService.publish_course(db, course_id, current_user)
    if changed:
        await publish(db, EventTopic.COURSE_PUBLISHED, {
            "courseId": course.id,
            "instructorId": course.instructor_id,
        })
    return envelope(course.to_dict())


@router.delete("/{course_id}")
async def delete_course(
    course_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    await CourseService.delete_course(db, course_id)
    return envelope({"id": course_id, "deleted": True})
