from typing import List, Optional


class VisitSchedulerError(Exception):
    """Base class for errors surfaced to callers of the booking services."""

    error = "visit_scheduler_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(VisitSchedulerError):
    """Malformed input, rejected before anything is written."""

    error = "validation_error"

    def __init__(self, messages: List[str]):
        super().__init__("; ".join(messages))
        self.messages = list(messages)


class ExpiredVisitAmendError(ValidationError):
    """A visit that has already started cannot be changed or cancelled."""

    error = "expired_visit"

    def __init__(self, message: str):
        super().__init__([message])


class NotFoundError(VisitSchedulerError):
    error = "not_found"


class CapacityExceededError(VisitSchedulerError):
    """No room left for the requested restriction. Retry with over-booking allowed."""

    error = "capacity_exceeded"


class SchedulingConflictError(VisitSchedulerError):
    """The session template overlaps existing templates. Retry with override to proceed."""

    error = "scheduling_conflict"

    def __init__(self, message: str, conflicts: Optional[List[str]] = None):
        super().__init__(message)
        self.conflicts = list(conflicts or [])


class MigrationMatchError(VisitSchedulerError):
    error = "migration_match_error"
