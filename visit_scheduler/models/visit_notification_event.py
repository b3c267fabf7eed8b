from sqlalchemy import Column, Boolean, DateTime, func, Integer, Enum, ForeignKey, Text
from visit_scheduler.db.base_class import Base
from visit_scheduler.models.enums import NotificationEventType


class VisitNotificationEvent(Base):
    """A flag raised against a booked visit that staff need to review."""

    __tablename__ = "visit_notification_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    visit_id = Column(Integer, ForeignKey("visits.id"), nullable=False, index=True)
    event_type = Column(Enum(NotificationEventType, name="notification_event_type"), nullable=False)
    description = Column(Text, nullable=True)
    resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
