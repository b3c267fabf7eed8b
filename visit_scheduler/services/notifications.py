import logging
from typing import Protocol

from visit_scheduler.models.enums import NotificationEventType

logger = logging.getLogger(__name__)


class VisitEventNotifier(Protocol):
    def notify(self, event_type: NotificationEventType, reference: str, **details) -> None:
        ...


class LoggingNotifier:
    """Default notifier: records visit events in the application log."""

    def notify(self, event_type: NotificationEventType, reference: str, **details) -> None:
        logger.info("Visit event %s for %s %s", event_type.value, reference, details)
