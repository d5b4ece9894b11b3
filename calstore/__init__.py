from .directory import Calendar, CalendarDirectory
from .edit import EditPropagator
from .errors import (
    CalendarError,
    DuplicateEvent,
    DuplicateName,
    InvalidInput,
    InvalidProperty,
    InvalidRange,
    InvalidTimezone,
    NotFound,
)
from .event import Event, Visibility
from .recurrence import Recurrence, parse_weekdays, recurring
from .store import EventStore, WriteResult
from .util import DAY, DEFAULT_DURATION, HOUR, MINUTE, WEEK

__all__ = [
    "Event",
    "Visibility",
    "Recurrence",
    "recurring",
    "parse_weekdays",
    "EventStore",
    "WriteResult",
    "EditPropagator",
    "Calendar",
    "CalendarDirectory",
    "CalendarError",
    "InvalidInput",
    "InvalidProperty",
    "InvalidRange",
    "DuplicateEvent",
    "DuplicateName",
    "NotFound",
    "InvalidTimezone",
    "MINUTE",
    "HOUR",
    "DAY",
    "WEEK",
    "DEFAULT_DURATION",
]
