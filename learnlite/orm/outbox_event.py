"""
learnlite/orm/outbox_event.py
Outbox rows awaiting delivery by the notifications worker
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index

from learnlite.orm.base import Base, utcnow, isoformat


class OutboxEvent(Base):
    __tablename__ = "outbox_events"

    __table_args__ = (
        Index("ix_outbox_events_pending", "processed", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    topic = Column(String(100), nullable=False, index=True)
    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<OutboxEvent(id={self.id}, topic='{self.topic}', processed={self.processed})>"

    def to_dict(self):
        return {
            "id": self.id,
            "topic": self.topic,
            "payload": self.payload,
            "created_at": isoformat(self.created_at),
            "processed": self.processed,
            "processed_at": isoformat(self.processed_at),
        }
