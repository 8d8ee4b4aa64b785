"""
learnlite/services/certificate_service.py
Course completion certificates

Eligibility: an active or completed enrollment exists for (user, course)
and every lesson of the course has a completed progress row for that
enrollment. At most one certificate exists per (user, course); duplicates
are detected by the unique constraint, and a collision on the random code
is retried with a fresh code.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.config.feature_flags import feature_flags
from learnlite.errors import ErrorCode
from learnlite.exceptions import BusinessRuleError, ConflictError, ForbiddenError, InternalError, NotFoundError
from learnlite.orm.certificate import Certificate, generate_certificate_code
from learnlite.orm.course import Course
from learnlite.orm.enrollment import ENROLLED_STATUSES
from learnlite.orm.user import User, UserRole
from learnlite.services.course_service import CourseService, can_manage_course
from learnlite.services.enrollment_service import EnrollmentService
from learnlite.services.progress_service import ProgressService
from learnlite.validators import is_plausible_certificate_code

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


@dataclass
class Eligibility:
    eligible: bool
    reason: Optional[str] = None
    completed: int = 0
    total: int = 0


class CertificateService:

    @classmethod
    async def check_eligibility(cls, db: AsyncSession, user_id: int, course_id: int) -> Eligibility:
        enrollment = await EnrollmentService.find_enrollment(db, user_id, course_id)
        if enrollment is None:
            return Eligibility(False, "ENROLLMENT_NOT_FOUND")
        if enrollment.status not in ENROLLED_STATUSES:
            return Eligibility(False, "ENROLLMENT_NOT_ACTIVE")

        total = await ProgressService.count_lessons(db, course_id)
        if total == 0 and not feature_flags.is_enabled("FEATURE_CERTIFICATES_EMPTY_COURSES"):
            return Eligibility(False, "NO_LESSONS_IN_COURSE")

        completed = await ProgressService.count_completed_lessons(db, enrollment.id, course_id)
        if completed < total:
            return Eligibility(False, f"NOT_ALL_LESSONS_COMPLETED ({completed}/{total})", completed, total)
        return Eligibility(True, None, completed, total)

    @classmethod
    async def _insert_certificate(
        cls,
        db: AsyncSession,
        user_id: int,
        course_id: int,
        duplicate_message: str,
    ) -> Certificate:
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            certificate = Certificate(user_id=user_id, course_id=course_id, code=generate_certificate_code())
            db.add(certificate)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                existing = await db.execute(
                    select(Certificate.id).where(
                        Certificate.user_id == user_id,
                        Certificate.course_id == course_id,
                    )
                )
                if existing.first() is not None:
                    raise ConflictError(duplicate_message, ErrorCode.ALREADY_ISSUED)
                logger.warning(f"Certificate code collision on attempt {attempt}, retrying")
                continue

            await db.refresh(certificate)
            logger.info(f"Certificate {certificate.code} issued to user {user_id} for course {course_id}")
            return certificate

        raise InternalError("Could not generate a unique certificate code")

    @classmethod
    async def issue_certificate(
        cls,
        db: AsyncSession,
        user_id: int,
        course_id: int,
        issuer_id: int,
        issuer_role: UserRole,
    ) -> Certificate:
        """Issue a certificate to an eligible user on behalf of an instructor or admin."""
        course = await db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)
        if issuer_role == UserRole.instructor and course.instructor_id != issuer_id:
            raise ForbiddenError("You can only issue certificates for your own courses", ErrorCode.NOT_OWNER)
        if issuer_role not in (UserRole.instructor, UserRole.admin):
            raise ForbiddenError("Insufficient permissions", ErrorCode.FORBIDDEN)

        eligibility = await cls.check_eligibility(db, user_id, course_id)
        if not eligibility.eligible:
            raise BusinessRuleError(f"User is not eligible: {eligibility.reason}", ErrorCode.NOT_ELIGIBLE)

        return await cls._insert_certificate(
            db, user_id, course_id, "Certificate already issued for this user and course"
        )

    @classmethod
    async def claim_certificate(cls, db: AsyncSession, user_id: int, course_id: int) -> Certificate:
        """Self-service issuance for the caller's own completed course."""
        course = await db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)

        eligibility = await cls.check_eligibility(db, user_id, course_id)
        if not eligibility.eligible:
            raise BusinessRuleError(f"Not eligible for certificate: {eligibility.reason}", ErrorCode.NOT_ELIGIBLE)

        return await cls._insert_certificate(
            db, user_id, course_id, "Certificate already claimed for this course"
        )

    @classmethod
    async def get_user_certificates(cls, db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(Certificate, Course)
            .join(Course, Course.id == Certificate.course_id)
            .where(Certificate.user_id == user_id)
            .order_by(Certificate.issued_at.desc(), Certificate.id.desc())
        )
        items = []
        for certificate, course in result.all():
            item = certificate.to_dict()
            item["course"] = {"id": course.id, "title": course.title}
            items.append(item)
        return items

    @classmethod
    async def get_course_certificates(cls, db: AsyncSession, course_id: int, requester: User) -> List[Dict[str, Any]]:
        course = await CourseService.get_course(db, course_id)
        if not can_manage_course(course, requester):
            raise ForbiddenError("You can only view certificates for your own courses", ErrorCode.NOT_OWNER)

        result = await db.execute(
            select(Certificate, User)
            .join(User, User.id == Certificate.user_id)
            .where(Certificate.course_id == course_id)
            .order_by(Certificate.issued_at.desc(), Certificate.id.desc())
        )
        items = []
        for certificate, student in result.all():
            item = certificate.to_dict()
            item["user"] = student.to_summary()
            items.append(item)
        return items

    @classmethod
    async def verify_certificate(cls, db: AsyncSession, code: Any) -> Dict[str, Any]:
        """
        Public verification.

        Never raises: malformed codes, unknown codes and internal failures
        all answer {"valid": False} so the response cannot be used to tell
        them apart.
        """
        if not is_plausible_certificate_code(code):
            return {"valid": False}
        try:
            result = await db.execute(
                select(Certificate, User, Course)
                .join(User, User.id == Certificate.user_id)
                .join(Course, Course.id == Certificate.course_id)
                .where(Certificate.code == code)
            )
            row = result.first()
        except Exception as e:
            logger.error(f"Certificate verification failed: {type(e).__name__}: {str(e)}")
            return {"valid": False}

        if row is None:
            return {"valid": False}

        certificate, student, course = row
        return {
            "valid": True,
            "code": certificate.code,
            "user": {"name": student.name},
            "course": {"title": course.title},
            "issued_at": certificate.issued_at.isoformat(),
        }
