import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from visit_scheduler.db.init_db import create_database
from visit_scheduler.db.base import Base
from visit_scheduler.db.session import engine, SessionLocal
from visit_scheduler.core.config import settings
from visit_scheduler.core.exceptions import (
    VisitSchedulerError,
    ValidationError,
    NotFoundError,
    CapacityExceededError,
    SchedulingConflictError,
    MigrationMatchError,
)
from visit_scheduler.api.v1.router import api_router
from visit_scheduler.schemas.common import ErrorResponse
from visit_scheduler.tasks.application_tasks import run_delete_expired_applications
from visit_scheduler.tasks.flag_visits_tasks import run_flag_ineligible_visits

logger = logging.getLogger(__name__)


async def _periodic_task_loop(name: str, task, interval_seconds: int) -> None:
    """Background task: run a locked sweep every interval_seconds."""
    while True:
        try:
            result = await asyncio.to_thread(task, SessionLocal)
            if result:
                logger.info("Task %s processed %d record(s).", name, result)
        except Exception:
            logger.exception("Error during task %s.", name)
        await asyncio.sleep(interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    create_database()
    Base.metadata.create_all(bind=engine)

    tasks = []
    if settings.EXPIRED_APPLICATION_TASK_ENABLED:
        tasks.append(asyncio.create_task(_periodic_task_loop(
            "delete-expired-applications",
            run_delete_expired_applications,
            settings.EXPIRED_APPLICATION_TASK_INTERVAL_SECONDS,
        )))
    if settings.FLAG_VISITS_TASK_ENABLED:
        tasks.append(asyncio.create_task(_periodic_task_loop(
            "flag-ineligible-visits",
            run_flag_ineligible_visits,
            settings.FLAG_VISITS_TASK_INTERVAL_SECONDS,
        )))
    yield

    # Shutdown: cancel background tasks
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (CapacityExceededError, 409),
    (SchedulingConflictError, 409),
    (MigrationMatchError, 422),
)


@app.exception_handler(VisitSchedulerError)
def handle_visit_scheduler_error(request: Request, exc: VisitSchedulerError):
    status_code = next((code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 400)
    body = ErrorResponse(
        error=exc.error,
        message=exc.message,
        messages=getattr(exc, "messages", None),
        conflicts=getattr(exc, "conflicts", None),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"Hello": "Visit Scheduler"}
