"""
Reminder worker.

A small polling loop for deployments without an external cron: every
``interval_seconds`` it opens a session, runs the reminder sweep (which also
purges expired notifications) and logs the outcome.

    python -m taskflow.worker

To stop the loop, cancel the coroutine or interrupt the process.
"""

import asyncio
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from taskflow.core.config import settings
from taskflow.core.logging import setup_logging
from taskflow.db.base import SessionLocal
from taskflow.services.notification_service import NotificationService, SweepResult

logger = logging.getLogger(__name__)


def run_sweep_once(session_factory: Callable[[], Session] = SessionLocal) -> Optional[SweepResult]:
    db = session_factory()
    try:
        return NotificationService(db).run_reminder_sweep()
    except Exception:
        logger.exception("reminder sweep crashed")
        return None
    finally:
        db.close()


async def run_reminder_loop(
        *,
        interval_seconds: float = settings.REMINDER_SWEEP_INTERVAL_SECONDS,
        session_factory: Callable[[], Session] = SessionLocal,
) -> None:
    sleep_s = max(1.0, float(interval_seconds))
    logger.info("Reminder worker started interval=%ss", sleep_s)
    while True:
        # The sweep is blocking database work; keep the event loop free
        await asyncio.to_thread(run_sweep_once, session_factory)
        await asyncio.sleep(sleep_s)


def main() -> None:
    setup_logging(settings.LOG_LEVEL)

    from taskflow import models  # noqa: F401
    from taskflow.db.base import Base, engine
    Base.metadata.create_all(bind=engine)

    try:
        asyncio.run(run_reminder_loop())
    except KeyboardInterrupt:
        logger.info("Reminder worker stopped")


if __name__ == "__main__":
    main()
