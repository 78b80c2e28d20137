"""Transaction scoping for multi-step order mutations."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, operation: str) -> Iterator[Session]:
    """Commit everything written inside the block once, or nothing at all."""

    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("transaction.rolled_back operation=%s", operation)
        raise
