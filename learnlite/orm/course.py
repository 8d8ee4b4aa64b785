"""
learnlite/orm/course.py
Courses owned by an instructor
"""
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, CheckConstraint, Index
)

from learnlite.orm.base import Base, utcnow, isoformat


class Course(Base):
    """
    A course is created unpublished. Publishing is a one-way flip that
    opens it for enrollment.
    """
    __tablename__ = "courses"

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_courses_price_non_negative"),
        Index("ix_courses_published_created", "published", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    price_cents = Column(Integer, nullable=False, default=0)
    published = Column(Boolean, nullable=False, default=False)

    instructor_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}', published={self.published})>"

    def is_owned_by(self, user_id: int) -> bool:
        return self.instructor_id == user_id

    def to_dict(self, instructor=None):
        result = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price_cents": self.price_cents,
            "published": self.published,
            "instructor_id": self.instructor_id,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if instructor is not None:
            result["instructor"] = {"id": instructor.id, "name": instructor.name}
        return result

    def to_summary(self):
        return {
            "id": self.id,
            "title": self.title,
            "published": self.published,
            "price_cents": self.price_cents,
        }
