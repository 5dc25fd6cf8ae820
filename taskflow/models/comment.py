from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from taskflow.core.clock import utcnow
from taskflow.db.base import Base

MAX_COMMENT_LENGTH = 2000

class Comment(Base):
    """
    A comment on a task. ``parent_id`` links replies into a tree; the tree is
    walked explicitly on delete rather than relying on database cascades.
    """

    __tablename__ = "comments"
    
    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    task = relationship("Task")
    author = relationship("User")
