"""
learnlite/tasks/notifications_worker.py
Background delivery of outbox events to a notification sink

The worker polls unprocessed outbox rows oldest first, hands each one to
the configured sink and marks it processed once the sink accepted it.
Delivery is at-least-once: a crash between sending and committing the
processed flag re-delivers the event on the next cycle.
"""
import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnlite.config.settings import settings
from learnlite.orm.base import utcnow
from learnlite.orm.outbox_event import OutboxEvent

logger = logging.getLogger(__name__)


class ConsoleSink:
    """Writes one log line per notification."""
    name = "console"

    async def send(self, message: Dict[str, Any]) -> None:
        logger.info(f"Notification [{message['topic']}] {json.dumps(message['payload'], sort_keys=True)}")


class FileSink:
    """Appends one JSON document per line."""
    name = "file"

    def __init__(self, path: str):
        self.path = path

    def _append(self, line: str) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    async def send(self, message: Dict[str, Any]) -> None:
        line = json.dumps(message, sort_keys=True)
        await asyncio.get_running_loop().run_in_executor(None, self._append, line)


def build_sink(kind: str, log_file: str):
    if kind == "file":
        return FileSink(log_file)
    return ConsoleSink()


class NotificationsWorker:

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        sink=None,
        interval_seconds: Optional[int] = None,
        batch_size: Optional[int] = None,
    ):
        if session_factory is None:
            from learnlite.database import AsyncSessionLocal
            session_factory = AsyncSessionLocal
        self.session_factory = session_factory
        self.sink = sink or build_sink(settings.notifications_sink, settings.notifications_log_file)
        self.interval_seconds = interval_seconds or settings.notifications_interval_seconds
        self.batch_size = batch_size or settings.notifications_batch_size

        self.last_run_at: Optional[datetime] = None
        self.pending_estimate = 0
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def count_pending(self, db: AsyncSession) -> int:
        result = await db.execute(
            select(func.count(OutboxEvent.id)).where(OutboxEvent.processed.is_(False))
        )
        return result.scalar() or 0

    async def process_batch(self) -> int:
        """
        Deliver one batch of pending events. Returns how many were delivered.

        A sink failure stops the batch: events delivered before it stay
        processed, the failed one and everything after it are retried on
        the next cycle.
        """
        async with self._lock:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(OutboxEvent)
                    .where(OutboxEvent.processed.is_(False))
                    .order_by(OutboxEvent.created_at, OutboxEvent.id)
                    .limit(self.batch_size)
                    .with_for_update(skip_locked=True)
                )
                events = list(result.scalars().all())

                delivered = 0
                for event in events:
                    message = event.to_dict()
                    message["delivered_at"] = datetime.now(timezone.utc).isoformat()
                    try:
                        await self.sink.send(message)
                    except Exception as e:
                        logger.error(f"Delivery of outbox event {event.id} ({event.topic}) failed: {str(e)}")
                        break
                    event.processed = True
                    event.processed_at = utcnow()
                    delivered += 1

                await db.commit()
                self.pending_estimate = await self.count_pending(db)

            self.last_run_at = datetime.now(timezone.utc)
            if delivered:
                logger.info(f"Delivered {delivered} notification event(s), {self.pending_estimate} pending")
            return delivered

    async def run_loop(self):
        """Poll forever; errors of a cycle are logged and the loop continues."""
        logger.info(
            f"Notifications worker started: sink={self.sink.name}, interval={self.interval_seconds}s"
        )
        while True:
            try:
                await self.process_batch()
            except Exception as e:
                logger.error(f"Notifications worker cycle failed: {str(e)}")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        """Start polling as a background task."""
        if self.running:
            logger.warning("Notifications worker already running")
            return self._task
        self._task = asyncio.create_task(self.run_loop())
        return self._task

    async def stop(self) -> None:
        """Cancel the polling task, waiting for an in-flight batch to finish."""
        if self._task is None:
            return
        async with self._lock:
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Notifications worker stopped")

    def status(self) -> Dict[str, Any]:
        return {
            "enabled": settings.notifications_enabled,
            "running": self.running,
            "interval": self.interval_seconds,
            "batchSize": self.batch_size,
            "lastRunAt": self.last_run_at.isoformat() if self.last_run_at else None,
            "pendingEstimate": self.pending_estimate,
            "sink": self.sink.name,
        }


_worker: Optional[NotificationsWorker] = None


def get_worker() -> NotificationsWorker:
    global _worker
    if _worker is None:
        _worker = NotificationsWorker()
    return _worker


def main():
    """Run the worker standalone, outside the API process."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    worker = get_worker()
    try:
        asyncio.run(worker.run_loop())
    except KeyboardInterrupt:
        logger.info("Notifications worker interrupted")


if __name__ == "__main__":
    main()
