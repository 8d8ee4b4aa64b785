"""
learnlite/services/outbox.py
Outbox publisher

Events are written to outbox_events only after the mutation they describe
has committed, so no event is ever published for a change that did not
happen. Delivery to a notification sink is the job of
learnlite/tasks/notifications_worker.py and is at-least-once: consumers
must tolerate duplicates.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.config.settings import settings
from learnlite.orm.outbox_event import OutboxEvent

logger = logging.getLogger(__name__)


class EventTopic:
    ENROLLMENT_CREATED = "enrollment.created"
    ENROLLMENT_STATUS_CHANGED = "enrollment.status_changed"
    CERTIFICATE_ISSUED = "certificate.issued"
    COURSE_PUBLISHED = "course.published"


async def publish(db: AsyncSession, topic: str, payload: Dict[str, Any]) -> Optional[int]:
    """
    Insert one unprocessed event and return its id.

    Returns None when notifications are disabled or the insert fails; the
    failure is logged and rolled back so the caller's already committed
    mutation still succeeds.
    """
    if not settings.notifications_enabled:
        logger.debug(f"Notifications disabled, dropping {topic}")
        return None

    event = OutboxEvent(topic=topic, payload=payload, processed=False)
    try:
        db.add(event)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to publish outbox event {topic}: {str(e)}")
        return None

    logger.info(f"Published outbox event {event.id} ({topic})")
    return event.id
