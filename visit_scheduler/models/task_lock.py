from sqlalchemy import Column, String, DateTime
from visit_scheduler.db.base_class import Base


class TaskLock(Base):
    """Cluster-wide named lock for scheduled tasks."""

    __tablename__ = "task_locks"

    name = Column(String(64), primary_key=True)
    lock_until = Column(DateTime(timezone=True), nullable=False)
    locked_at = Column(DateTime(timezone=True), nullable=False)
    locked_by = Column(String(255), nullable=False)
