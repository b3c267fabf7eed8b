from visit_scheduler.db.base_class import Base
from visit_scheduler.models.session_template import (
    SessionTemplate, SessionLocationGroup, PermittedSessionLocation,
    SessionCategoryGroup, SessionCategory, SessionIncentiveGroup, SessionIncentiveLevel,
)
from visit_scheduler.models.session_slot import SessionSlot
from visit_scheduler.models.exclude_date import PrisonExcludeDate, SessionTemplateExcludeDate
from visit_scheduler.models.application import Application, ApplicationVisitor
from visit_scheduler.models.visit import Visit, VisitVisitor
from visit_scheduler.models.visit_notification_event import VisitNotificationEvent
from visit_scheduler.models.task_lock import TaskLock
