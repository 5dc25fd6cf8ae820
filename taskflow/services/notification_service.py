import logging
import math
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Set, Tuple

import redis
from sqlalchemy import func
from sqlalchemy.orm import Session

from taskflow.core.clock import utcnow
from taskflow.core.config import settings
from taskflow.core.exceptions import NotFound
from taskflow.core.permissions import deny
from taskflow.db.redis_client import get_redis
from taskflow.models.notification import Notification, NotificationType
from taskflow.models.task import Task, TaskStatus, OPEN_STATUSES
from taskflow.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    reminders_created: int = 0
    chains_stopped: int = 0
    skipped: int = 0
    failed: int = 0
    expired_purged: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def comment_recipients(
    assignee_ids: Iterable[int],
    creator_id: int,
    commenter_id: int,
    parent_author_id: Optional[int] = None
) -> Set[int]:
    """Assignees and the task creator, plus the replied-to author, minus the commenter"""
    recipients = set(assignee_ids) | {creator_id}
    if parent_author_id is not None:
        recipients.add(parent_author_id)
    recipients.discard(commenter_id)
    return recipients


def _task_label(task: Task) -> str:
    if task.equipment and task.area:
        return f"{task.title} ({task.equipment} - {task.area})"
    return task.title


class NotificationService:
    def __init__(self, db: Session):
        self.db = db
        self.redis = get_redis()
        self.ttl = timedelta(hours=settings.NOTIFICATION_TTL_HOURS)
        self.reminder_interval = timedelta(hours=settings.REMINDER_INTERVAL_HOURS)

    # ---- creation (flushed, committed by the caller or a post-commit hook) ----

    def _create(
        self,
        user_id: int,
        task_id: Optional[int],
        type_: NotificationType,
        message: str,
        now: datetime,
        next_reminder_at: Optional[datetime] = None
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            task_id=task_id,
            type=type_,
            message=message,
            is_read=False,
            next_reminder_at=next_reminder_at,
            expires_at=now + self.ttl,
            created_at=now
        )
        self.db.add(notification)
        self.db.flush()
        self._invalidate_unread(user_id)
        return notification

    def create_assigned(self, task: Task, user_id: int, now: Optional[datetime] = None) -> Notification:
        now = now or utcnow()
        return self._create(
            user_id,
            task.id,
            NotificationType.ASSIGNED,
            f"You have been assigned to task: {_task_label(task)}",
            now,
            next_reminder_at=now + self.reminder_interval
        )

    def create_comment(
        self,
        task: Task,
        user_id: int,
        commenter: User,
        is_reply: bool,
        now: Optional[datetime] = None
    ) -> Notification:
        now = now or utcnow()
        verb = "replied to a comment on" if is_reply else "commented on"
        return self._create(
            user_id,
            task.id,
            NotificationType.COMMENT,
            f'{commenter.name} {verb} "{task.title}"',
            now
        )

    def create_reminder(self, task: Task, user_id: int, now: Optional[datetime] = None) -> Notification:
        now = now or utcnow()
        status = TaskStatus(task.status).value
        return self._create(
            user_id,
            task.id,
            NotificationType.REMINDER,
            f'Reminder: Task "{_task_label(task)}" is still {status}',
            now
        )

    # ---- reads ----

    def _active(self, user_id: int, now: datetime):
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.expires_at > now
        )

    def list_for_user(self, user_id: int, now: Optional[datetime] = None) -> Tuple[List[Notification], int]:
        now = now or utcnow()
        notifications = (
            self._active(user_id, now)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(settings.NOTIFICATION_LIST_LIMIT)
            .all()
        )
        return notifications, self.unread_count(user_id, now)

    def unread_count(self, user_id: int, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        cache_key = f"notifications:unread:{user_id}"
        if self.redis is not None:
            try:
                cached = self.redis.get(cache_key)
                if cached is not None:
                    return int(cached)
            except redis.RedisError:
                logger.warning("unread count cache read failed user_id=%s", user_id, exc_info=True)

        unread = self._active(user_id, now).filter(Notification.is_read.is_(False))
        count = unread.count()

        if self.redis is not None:
            ttl = settings.UNREAD_COUNT_CACHE_SECONDS
            soonest = unread.with_entities(func.min(Notification.expires_at)).scalar()
            if soonest is not None:
                # The cached count must not outlive the first notification it includes
                ttl = min(ttl, max(1, math.ceil((soonest - now).total_seconds())))
            try:
                self.redis.setex(cache_key, ttl, count)
            except redis.RedisError:
                logger.warning("unread count cache write failed user_id=%s", user_id, exc_info=True)
        return count

    # ---- read state ----

    def mark_read(self, notification_id: int, user: User) -> Notification:
        notification = self.db.query(Notification).filter(Notification.id == notification_id).first()
        if notification is None:
            raise NotFound("Notification not found", code="notification_not_found")
        if notification.user_id != user.id:
            deny("notification_not_owned").require()

        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        self._invalidate_unread(user.id)
        return notification

    def mark_all_read(self, user: User) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user.id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        self._invalidate_unread(user.id)
        return updated

    # ---- time-driven maintenance ----

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete every notification whose TTL has passed, read or not"""
        now = now or utcnow()
        user_ids = [
            row.user_id
            for row in self.db.query(Notification.user_id)
            .filter(Notification.expires_at <= now)
            .distinct()
        ]
        deleted = (
            self.db.query(Notification)
            .filter(Notification.expires_at <= now)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        for user_id in user_ids:
            self._invalidate_unread(user_id)
        if deleted:
            logger.info("Purged %s expired notifications", deleted)
        return deleted

    def run_reminder_sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Walk every assignment notification whose reminder is due.

        - open task      -> new reminder notification, chain advances
        - completed task or unassigned user -> chain stops for good
        - missing task   -> skipped

        Items are processed in their own transactions so one failure does not
        abort the rest. Expired notifications are purged afterwards.
        """
        now = now or utcnow()
        result = SweepResult()

        due_ids = [
            row.id
            for row in self.db.query(Notification.id)
            .filter(
                Notification.type == NotificationType.ASSIGNED,
                Notification.next_reminder_at.isnot(None),
                Notification.next_reminder_at <= now
            )
            .order_by(Notification.next_reminder_at)
        ]

        for notification_id in due_ids:
            try:
                self._process_due(notification_id, now, result)
                self.db.commit()
            except Exception:
                self.db.rollback()
                result.failed += 1
                logger.exception("reminder sweep failed notification_id=%s", notification_id)

        try:
            result.expired_purged = self.purge_expired(now)
        except Exception:
            self.db.rollback()
            logger.exception("expired notification purge failed")

        logger.info(
            "Reminder sweep: created=%s stopped=%s skipped=%s failed=%s purged=%s",
            result.reminders_created,
            result.chains_stopped,
            result.skipped,
            result.failed,
            result.expired_purged
        )
        return result

    def _process_due(self, notification_id: int, now: datetime, result: SweepResult) -> None:
        notification = self.db.query(Notification).filter(Notification.id == notification_id).first()
        if notification is None:
            result.skipped += 1
            return

        task = None
        if notification.task_id is not None:
            task = self.db.query(Task).filter(Task.id == notification.task_id).first()

        if task is None:
            result.skipped += 1
            return

        still_assigned = notification.user_id in task.assignee_ids
        if still_assigned and TaskStatus(task.status) in OPEN_STATUSES:
            self.create_reminder(task, notification.user_id, now)
            notification.next_reminder_at = now + self.reminder_interval
            result.reminders_created += 1
        else:
            notification.next_reminder_at = None
            result.chains_stopped += 1

    def _invalidate_unread(self, user_id: int) -> None:
        if self.redis is None:
            return
        try:
            self.redis.delete(f"notifications:unread:{user_id}")
        except redis.RedisError:
            logger.warning("unread count cache invalidation failed user_id=%s", user_id, exc_info=True)
