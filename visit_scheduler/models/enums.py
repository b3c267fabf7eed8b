import enum
from datetime import date


class DayOfWeek(str, enum.Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def weekday(self) -> int:
        """Same numbering as date.weekday(): Monday is 0."""
        return list(DayOfWeek).index(self)

    @classmethod
    def of(cls, value: date) -> "DayOfWeek":
        return list(cls)[value.weekday()]


class VisitRestriction(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class VisitStatus(str, enum.Enum):
    BOOKED = "BOOKED"
    CANCELLED = "CANCELLED"


class NotificationEventType(str, enum.Enum):
    APPLICATION_RESERVED = "APPLICATION_RESERVED"
    APPLICATION_CHANGED = "APPLICATION_CHANGED"
    APPLICATION_DELETED = "APPLICATION_DELETED"
    VISIT_BOOKED = "VISIT_BOOKED"
    VISIT_UPDATED = "VISIT_UPDATED"
    VISIT_CANCELLED = "VISIT_CANCELLED"
    PRISONER_NOT_ELIGIBLE = "PRISONER_NOT_ELIGIBLE"
    PRISON_VISITS_BLOCKED_FOR_DATE = "PRISON_VISITS_BLOCKED_FOR_DATE"
    SESSION_VISITS_BLOCKED_FOR_DATE = "SESSION_VISITS_BLOCKED_FOR_DATE"
