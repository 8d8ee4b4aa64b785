"""
learnlite/orm/lesson_progress.py
Per-enrollment lesson completion
"""
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint

from learnlite.orm.base import Base, utcnow, isoformat


class LessonProgress(Base):
    """
    One row per (enrollment, lesson).

    completed_at is set the first time the lesson is completed and cleared
    when the student marks it incomplete again.
    """
    __tablename__ = "lesson_progress"

    __table_args__ = (
        UniqueConstraint("enrollment_id", "lesson_id", name="uq_lesson_progress_enrollment_lesson"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    enrollment_id = Column(
        Integer,
        ForeignKey("enrollments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    lesson_id = Column(
        Integer,
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<LessonProgress(enrollment_id={self.enrollment_id}, lesson_id={self.lesson_id}, completed={self.completed})>"

    def to_dict(self):
        return {
            "id": self.id,
            "enrollment_id": self.enrollment_id,
            "lesson_id": self.lesson_id,
            "completed": self.completed,
            "completed_at": isoformat(self.completed_at),
            "updated_at": isoformat(self.updated_at),
        }
