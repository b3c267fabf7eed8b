from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from visit_scheduler.clients.prisoner_search import PrisonerLookup, PrisonerSearchClient
from visit_scheduler.core.config import settings
from visit_scheduler.db.session import get_db
from visit_scheduler.services.application_service import ApplicationService
from visit_scheduler.services.exclude_date_service import ExcludeDateService
from visit_scheduler.services.migration_service import MigrationService
from visit_scheduler.services.notifications import LoggingNotifier, VisitEventNotifier
from visit_scheduler.services.session_group_service import SessionGroupService
from visit_scheduler.services.session_service import SessionService
from visit_scheduler.services.session_template_service import SessionTemplateService


@lru_cache
def get_notifier() -> VisitEventNotifier:
    return LoggingNotifier()


@lru_cache
def get_prisoner_lookup() -> PrisonerLookup:
    return PrisonerSearchClient(settings.PRISONER_SEARCH_URL, settings.PRISONER_SEARCH_TIMEOUT_SECONDS)


def get_application_service(
    db: Session = Depends(get_db),
    notifier: VisitEventNotifier = Depends(get_notifier),
) -> ApplicationService:
    return ApplicationService(
        db,
        notifier,
        expired_application_ttl_minutes=settings.EXPIRED_APPLICATION_TTL_MINUTES,
        max_total_visitors=settings.MAX_TOTAL_VISITORS,
        min_support_description_length=settings.MIN_SUPPORT_DESCRIPTION_LENGTH,
    )


def get_session_service(
    db: Session = Depends(get_db),
    prisoner_lookup: PrisonerLookup = Depends(get_prisoner_lookup),
) -> SessionService:
    return SessionService(
        db,
        prisoner_lookup,
        policy_notice_days_min=settings.POLICY_NOTICE_DAYS_MIN,
        policy_notice_days_max=settings.POLICY_NOTICE_DAYS_MAX,
        expired_application_ttl_minutes=settings.EXPIRED_APPLICATION_TTL_MINUTES,
    )


def get_session_template_service(db: Session = Depends(get_db)) -> SessionTemplateService:
    return SessionTemplateService(db, settings.EXPIRED_APPLICATION_TTL_MINUTES)


def get_session_group_service(db: Session = Depends(get_db)) -> SessionGroupService:
    return SessionGroupService(db)


def get_migration_service(
    db: Session = Depends(get_db),
    prisoner_lookup: PrisonerLookup = Depends(get_prisoner_lookup),
) -> MigrationService:
    return MigrationService(db, prisoner_lookup, max_proximity_minutes=settings.MAX_PROXIMITY_MINUTES)


def get_exclude_date_service(db: Session = Depends(get_db)) -> ExcludeDateService:
    return ExcludeDateService(db)
