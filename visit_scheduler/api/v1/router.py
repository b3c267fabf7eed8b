from fastapi import APIRouter

# Public: applications (reservations) and visits (bookings)
from visit_scheduler.api.v1.public.applications import router as applications_router
from visit_scheduler.api.v1.public.visits import router as visits_router

# Public: session picker
from visit_scheduler.api.v1.public.visit_sessions import router as visit_sessions_router

# Admin
from visit_scheduler.api.v1.admin.session_templates import router as session_templates_router
from visit_scheduler.api.v1.admin.session_groups import router as session_groups_router
from visit_scheduler.api.v1.admin.migrate import router as migrate_router
from visit_scheduler.api.v1.admin.exclude_dates import router as exclude_dates_router

api_router = APIRouter()

# --- Public: reservations & bookings ---
api_router.include_router(applications_router)
api_router.include_router(visits_router)

# --- Public: sessions ---
api_router.include_router(visit_sessions_router)

# --- Admin ---
api_router.include_router(session_templates_router)
api_router.include_router(session_groups_router)
api_router.include_router(migrate_router)
api_router.include_router(exclude_dates_router)
