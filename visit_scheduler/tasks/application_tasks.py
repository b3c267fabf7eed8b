import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from visit_scheduler.core.config import settings
from visit_scheduler.services.application_service import ApplicationService
from visit_scheduler.services.notifications import VisitEventNotifier
from visit_scheduler.tasks.lock import run_locked_task

logger = logging.getLogger(__name__)

DELETE_EXPIRED_APPLICATIONS_TASK = "deleteExpiredApplicationsTask"


def delete_expired_applications(
    db: Session,
    notifier: Optional[VisitEventNotifier] = None,
    expired_application_ttl_minutes: int = 24 * 60,
) -> int:
    """Delete applications that were never booked within the hold TTL."""
    service = ApplicationService(
        db, notifier, expired_application_ttl_minutes=expired_application_ttl_minutes
    )
    return service.expire_stale_holds()


def run_delete_expired_applications(session_factory) -> Optional[int]:
    return run_locked_task(
        session_factory,
        DELETE_EXPIRED_APPLICATIONS_TASK,
        lambda db: delete_expired_applications(
            db, expired_application_ttl_minutes=settings.EXPIRED_APPLICATION_TTL_MINUTES
        ),
        timedelta(seconds=settings.TASK_LOCK_AT_MOST_FOR_SECONDS),
    )
