import logging
from collections import defaultdict, deque
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from taskflow.core.clock import utcnow
from taskflow.core.exceptions import InvalidArgument, NotFound
from taskflow.core.permissions import Action, can_perform
from taskflow.models.comment import Comment, MAX_COMMENT_LENGTH
from taskflow.models.task import Task
from taskflow.models.user import User
from taskflow.services.hooks import PostCommitHooks
from taskflow.services.notification_service import NotificationService, comment_recipients

logger = logging.getLogger(__name__)


def clean_content(content: Optional[str]) -> str:
    content = (content or "").strip()
    if not content:
        raise InvalidArgument("Comment content is required", code="comment_empty")
    if len(content) > MAX_COMMENT_LENGTH:
        raise InvalidArgument(
            f"Comment is too long (max {MAX_COMMENT_LENGTH} characters)",
            code="comment_too_long"
        )
    return content


def _children_index(comments: List[Comment]) -> Dict[Optional[int], List[Comment]]:
    children = defaultdict(list)
    for comment in comments:
        children[comment.parent_id].append(comment)
    return children


def delete_comment_subtrees(db: Session, task_id: int, root_ids: List[int]) -> int:
    """
    Delete the given comments and every reply beneath them.

    The reply tree is walked breadth-first over an adjacency list and rows are
    deleted deepest first, so no reply ever outlives its parent.
    """
    comments = db.query(Comment).filter(Comment.task_id == task_id).all()
    children = _children_index(comments)

    order = []
    seen = set()
    queue = deque(root_ids)
    while queue:
        comment_id = queue.popleft()
        if comment_id in seen:
            continue
        seen.add(comment_id)
        order.append(comment_id)
        queue.extend(child.id for child in children.get(comment_id, []))

    for comment_id in reversed(order):
        db.query(Comment).filter(Comment.id == comment_id).delete(synchronize_session=False)
    db.expire_all()
    return len(order)


def delete_task_comments(db: Session, task_id: int) -> int:
    rows = db.query(Comment.id, Comment.parent_id).filter(Comment.task_id == task_id).all()
    ids = {row.id for row in rows}
    roots = [row.id for row in rows if row.parent_id not in ids]
    return delete_comment_subtrees(db, task_id, roots)


class CommentService:
    def __init__(self, db: Session):
        self.db = db

    def _get_task(self, task_id: int) -> Task:
        task = self.db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise NotFound("Task not found", code="task_not_found")
        return task

    def _get_comment(self, task_id: int, comment_id: int) -> Comment:
        comment = self.db.query(Comment).filter(Comment.id == comment_id).first()
        if not comment:
            raise NotFound("Comment not found", code="comment_not_found")
        if comment.task_id != task_id:
            raise InvalidArgument("Comment does not belong to this task", code="comment_task_mismatch")
        return comment

    def list_tree(self, task_id: int, user: User) -> List[dict]:
        """Top-level comments newest first, replies oldest first, nested to any depth"""
        task = self._get_task(task_id)
        can_perform(user, Action.VIEW_TASK, task).require()

        comments = self.db.query(Comment).filter(Comment.task_id == task_id).all()
        children = _children_index(comments)

        def build(comment: Comment) -> dict:
            replies = sorted(children.get(comment.id, []), key=lambda c: (c.created_at, c.id))
            return {
                "id": comment.id,
                "content": comment.content,
                "task_id": comment.task_id,
                "author_id": comment.author_id,
                "parent_id": comment.parent_id,
                "created_at": comment.created_at,
                "updated_at": comment.updated_at,
                "replies": [build(reply) for reply in replies],
            }

        roots = sorted(children.get(None, []), key=lambda c: (c.created_at, c.id), reverse=True)
        return [build(root) for root in roots]

    def create_comment(
        self,
        task_id: int,
        user: User,
        content: str,
        parent_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Comment:
        now = now or utcnow()
        content = clean_content(content)
        task = self._get_task(task_id)
        can_perform(user, Action.COMMENT_ON_TASK, task).require()

        parent = None
        if parent_id is not None:
            parent = self.db.query(Comment).filter(Comment.id == parent_id).first()
            if not parent:
                raise NotFound("Parent comment not found", code="parent_comment_not_found")
            if parent.task_id != task_id:
                raise InvalidArgument(
                    "Parent comment does not belong to this task",
                    code="parent_comment_task_mismatch"
                )

        comment = Comment(
            content=content,
            task_id=task_id,
            author_id=user.id,
            parent_id=parent_id,
            created_at=now,
            updated_at=now
        )
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)

        recipients = comment_recipients(
            task.assignee_ids,
            task.created_by,
            user.id,
            parent.author_id if parent is not None else None
        )
        hooks = PostCommitHooks(self.db)
        for recipient_id in sorted(recipients):
            hooks.add(
                f"notify_comment task={task.id} user={recipient_id}",
                lambda db, uid=recipient_id: NotificationService(db).create_comment(
                    task, uid, user, parent is not None, now
                )
            )
        hooks.run()

        self.db.refresh(comment)
        return comment

    def update_comment(self, task_id: int, comment_id: int, user: User, content: str) -> Comment:
        content = clean_content(content)
        comment = self._get_comment(task_id, comment_id)
        can_perform(user, Action.EDIT_COMMENT, comment).require()

        comment.content = content
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def delete_comment(self, task_id: int, comment_id: int, user: User) -> int:
        comment = self._get_comment(task_id, comment_id)
        task = self._get_task(task_id)
        can_perform(user, Action.DELETE_COMMENT, comment, task=task).require()

        deleted = delete_comment_subtrees(self.db, task_id, [comment.id])
        self.db.commit()
        logger.info("Deleted comment %s with %s replies", comment_id, deleted - 1)
        return deleted
