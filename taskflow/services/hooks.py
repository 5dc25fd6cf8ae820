import logging
from typing import Callable, List, Tuple

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class PostCommitHooks:
    """
    Side effects that run after a primary write has been committed.

    Each hook gets the session, runs in its own transaction and is isolated
    from the others: a failing hook is rolled back and logged, the remaining
    hooks still run, and nothing propagates to the caller.
    """

    def __init__(self, db: Session):
        self.db = db
        self._hooks: List[Tuple[str, Callable[[Session], None]]] = []

    def add(self, name: str, hook: Callable[[Session], None]) -> None:
        self._hooks.append((name, hook))

    def __len__(self) -> int:
        return len(self._hooks)

    def run(self) -> int:
        """Run every hook; return how many failed."""
        failed = 0
        for name, hook in self._hooks:
            try:
                hook(self.db)
                self.db.commit()
            except Exception:
                failed += 1
                self.db.rollback()
                logger.exception("post-commit hook failed: %s", name)
        self._hooks.clear()
        return failed
