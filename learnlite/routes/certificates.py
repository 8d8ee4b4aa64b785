"""
learnlite/routes/certificates.py
Certificate issuance, self-claim, listings and public verification
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import get_db
from learnlite.errors import envelope
from learnlite.orm.certificate import Certificate
from learnlite.orm.user import User
from learnlite.schemas import CertificateClaim, CertificateIssue
from learnlite.security.rbac import get_current_user, require_staff, require_student
from learnlite.services.certificate_service import CertificateService
from learnlite.services.outbox import EventTopic, publish

router = APIRouter(tags=["Certificates"])


async def _announce(db: AsyncSession, certificate: Certificate) -> None:
    await publish(db, EventTopic.CERTIFICATE_ISSUED, {
        "certificateId": certificate.id,
        "userId": certificate.user_id,
        "courseId": certificate.course_id,
        "code": certificate.code,
    })


@router.post("/certificates/issue", status_code=201)
async def issue_certificate(
    payload: CertificateIssue,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    certificate = await CertificateService.issue_certificate(
        db,
        user_id=payload.user_id,
        course_id=payload.course_id,
        issuer_id=current_user.id,
        issuer_role=current_user.role,
    )
    await _announce(db, certificate)
    return envelope(certificate.to_dict())


@router.post("/certificates/claim", status_code=201)
async def claim_certificate(
    payload: CertificateClaim,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_student),
):
    certificate = await CertificateService.claim_certificate(db, current_user.id, payload.course_id)
    await _announce(db, certificate)
    return envelope(certificate.to_dict())


@router.get("/certificates/me")
async def my_certificates(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope(await CertificateService.get_user_certificates(db, current_user.id))


@router.get("/courses/{course_id}/certificates")
async def course_certificates(
    course_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return envelope(await CertificateService.get_course_certificates(db, course_id, current_user))


@router.get("/certificates/{code}")
async def verify_certificate(code: str, db: AsyncSession = Depends(get_db)):
    """Public. Always 200; unknown, malformed and failed lookups all read valid=false."""
    return envelope(await CertificateService.verify_certificate(db, code))
