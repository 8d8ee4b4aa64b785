"""
learnlite/routes/enrollments.py
Self-enrollment, enrollment listings and admin status changes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import get_db
from learnlite.errors import ErrorCode, envelope, paginated
from learnlite.exceptions import ForbiddenError, NotFoundError
from learnlite.orm.user import User
from learnlite.schemas import EnrollmentCreate, EnrollmentStatusUpdate
from learnlite.security.rbac import get_current_user, require_admin, require_staff, require_student
from learnlite.services.course_service import CourseService
from learnlite.services.enrollment_service import EnrollmentService
from learnlite.services.outbox import EventTopic, publish
from learnlite.validators import clamp_pagination

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Enrollments"])


@router.post("/enrollments", status_code=201)
async def create_enrollment(
    payload: EnrollmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_student),
):
    enrollment = await EnrollmentService.create_enrollment(db, current_user.id, payload.course_id)

    await publish(db, EventTopic.ENROLLMENT_CREATED, {
        "enrollmentId": enrollment.id,
        "userId": enrollment.user_id,
        "courseId": enrollment.course_id,
    })
    return envelope(enrollment.to_dict())


@router.get("/enrollments/me")
async def my_enrollments(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page_no, page_size = clamp_pagination(page, limit)
    items, total = await EnrollmentService.get_user_enrollments(db, current_user.id, page_no, page_size)
    return paginated(items, total, page_no, page_size)


@router.put("/enrollments/{enrollment_id}/status")
async def update_enrollment_status(
    enrollment_id: int,
    payload: EnrollmentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    enrollment = await EnrollmentService.update_enrollment_status(db, enrollment_id, payload.status)
    if enrollment is None:
        raise NotFoundError("Enrollment not found", ErrorCode.ENROLLMENT_NOT_FOUND)

    await publish(db, EventTopic.ENROLLMENT_STATUS_CHANGED, {
        "enrollmentId": enrollment.id,
        "userId": enrollment.user_id,
        "courseId": enrollment.course_id,
        "status": enrollment.status.value,
    })
    return envelope(enrollment.to_dict())


@router.get("/courses/{course_id}/enrollments")
async def course_enrollments(
    course_id: int,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Roster of a course, for its owning instructor or an admin."""
    await CourseService.get_course(db, course_id)
    allowed = await EnrollmentService.can_view_course_enrollments(
        db, course_id, current_user.id, current_user.role
    )
    if not allowed:
        raise ForbiddenError("You can only view enrollments for your own courses", ErrorCode.FORBIDDEN)

    page_no, page_size = clamp_pagination(page, limit)
    items, total = await EnrollmentService.get_course_enrollments(db, course_id, page_no, page_size)
    return paginated(items, total, page_no, page_size)
