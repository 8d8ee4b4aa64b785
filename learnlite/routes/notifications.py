"""
learnlite/routes/notifications.py
Health of the outbox notifications worker
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.database import get_db
from learnlite.errors import envelope
from learnlite.schemas import NotificationsStatus
from learnlite.tasks.notifications_worker import get_worker

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/health")
async def notifications_health(db: AsyncSession = Depends(get_db)):
    worker = get_worker()
    worker.pending_estimate = await worker.count_pending(db)
    status = NotificationsStatus.model_validate(worker.status())
    return envelope(status.model_dump(by_alias=True))
