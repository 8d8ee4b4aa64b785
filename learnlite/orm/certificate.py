"""
learnlite/orm/certificate.py
Course completion certificates, at most one per (user, course)
"""
import secrets
import string

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint

from learnlite.orm.base import Base, utcnow, isoformat

CERTIFICATE_CODE_PREFIX = "CERT"
CERTIFICATE_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_code() -> str:
    """Generate a random certificate code of the form CERT-XXXXXX-XXXXXX."""
    def block():
        return ''.join(secrets.choice(CERTIFICATE_CODE_ALPHABET) for _ in range(6))
    return f"{CERTIFICATE_CODE_PREFIX}-{block()}-{block()}"


class Certificate(Base):
    __tablename__ = "certificates"

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_certificates_user_course"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    code = Column(String(100), nullable=False, unique=True, index=True)

    issued_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Certificate(id={self.id}, code='{self.code}')>"

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "code": self.code,
            "issued_at": isoformat(self.issued_at),
        }
