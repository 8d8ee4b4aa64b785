"""
learnlite/orm/lesson.py
Lessons of a course, kept in a dense 1..N position order
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index

from learnlite.orm.base import Base, utcnow, isoformat


class Lesson(Base):
    __tablename__ = "lessons"

    # Position is deliberately not unique: reorders rewrite every sibling
    # inside one transaction and pass through duplicate values.
    __table_args__ = (
        Index("ix_lessons_course_position", "course_id", "position"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    title = Column(String(255), nullable=False)
    video_url = Column(String(2048), nullable=True)
    content_md = Column(Text, nullable=True)
    position = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Lesson(id={self.id}, course_id={self.course_id}, position={self.position})>"

    def to_dict(self):
        return {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "video_url": self.video_url,
            "content_md": self.content_md,
            "position": self.position,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
