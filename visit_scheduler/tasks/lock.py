import logging
import os
import socket
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from visit_scheduler.models.task_lock import TaskLock

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_lock_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def acquire_task_lock(db: Session, name: str, lock_at_most_for: timedelta, locked_by: Optional[str] = None) -> bool:
    """
    Take the named lock unless another holder's lease is still running.

    Succeeds by taking over an elapsed lease, or by inserting the row the
    first time the task runs. A concurrent insert loses on the primary key.
    """
    now = datetime.now(timezone.utc)
    values = {
        TaskLock.lock_until: now + lock_at_most_for,
        TaskLock.locked_at: now,
        TaskLock.locked_by: locked_by or get_lock_owner(),
    }

    updated = (
        db.query(TaskLock)
        .filter(TaskLock.name == name, TaskLock.lock_until <= now)
        .update(values, synchronize_session=False)
    )
    if updated:
        db.commit()
        return True

    if db.get(TaskLock, name) is not None:
        db.rollback()
        return False

    try:
        db.add(TaskLock(name=name, **{column.key: value for column, value in values.items()}))
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True


def release_task_lock(db: Session, name: str, locked_by: Optional[str] = None) -> None:
    (
        db.query(TaskLock)
        .filter(TaskLock.name == name, TaskLock.locked_by == (locked_by or get_lock_owner()))
        .update({TaskLock.lock_until: datetime.now(timezone.utc)}, synchronize_session=False)
    )
    db.commit()


def run_locked_task(
    session_factory: Callable[[], Session],
    name: str,
    task: Callable[[Session], T],
    lock_at_most_for: timedelta = timedelta(hours=1),
) -> Optional[T]:
    """Run task(db) if this instance gets the named lock; otherwise skip and return None."""
    db = session_factory()
    try:
        if not acquire_task_lock(db, name, lock_at_most_for):
            logger.info("Task %s is locked by another instance, skipping", name)
            return None
        try:
            return task(db)
        finally:
            db.rollback()
            release_task_lock(db, name)
    finally:
        db.close()
