"""
learnlite/orm/enrollment.py
Student enrollments, at most one per (user, course)
"""
from enum import Enum

from sqlalchemy import (
    Column, Integer, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
)

from learnlite.orm.base import Base, utcnow, isoformat


class EnrollmentStatus(str, Enum):
    active = "active"
    completed = "completed"
    refunded = "refunded"


# Statuses that still count as "enrolled" for progress, quizzes and certificates
ENROLLED_STATUSES = (EnrollmentStatus.active, EnrollmentStatus.completed)


class Enrollment(Base):
    __tablename__ = "enrollments"

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
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
    status = Column(
        SQLEnum(EnrollmentStatus, name="enrollment_status", create_constraint=True),
        nullable=False,
        default=EnrollmentStatus.active
    )

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Enrollment(id={self.id}, user_id={self.user_id}, course_id={self.course_id}, status='{self.status}')>"

    @property
    def is_enrolled(self) -> bool:
        return self.status in ENROLLED_STATUSES

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "status": self.status.value if self.status else None,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
