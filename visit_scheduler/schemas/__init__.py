from visit_scheduler.schemas.common import ErrorResponse
from visit_scheduler.schemas.prisoner import Prisoner
from visit_scheduler.schemas.session_template import (
    PermittedLocation, LocationGroup, LocationGroupCreate,
    CategoryGroup, CategoryGroupCreate, IncentiveGroup, IncentiveGroupCreate,
    SessionTemplate, SessionTemplateCreate, SessionTemplateUpdate,
)
from visit_scheduler.schemas.application import (
    Application, ApplicationCreate, ApplicationChange,
    Visitor, ContactDetails, SupportDetails,
)
from visit_scheduler.schemas.visit import Visit, VisitCancel, CancelResponse
from visit_scheduler.schemas.visit_session import VisitSession
from visit_scheduler.schemas.migration import MigrateVisitRequest
from visit_scheduler.schemas.exclude_date import ExcludeDate
