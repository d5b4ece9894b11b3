"""Exceptions raised by calstore.

Every error is a ``CalendarError``, which is a ``ValueError`` so callers that
already guard on ``ValueError`` keep working.
"""


class CalendarError(ValueError):
    """Base class for calendar errors."""


class InvalidInput(CalendarError):
    """A required value is missing or malformed."""


class InvalidProperty(InvalidInput):
    """An edit named a property that events or calendars do not have."""


class InvalidRange(CalendarError):
    """An event was constructed with its end before its start."""


class DuplicateEvent(CalendarError):
    """An event with the same subject, start and end already exists."""


class DuplicateName(CalendarError):
    """A calendar with the same name already exists."""


class NotFound(CalendarError, LookupError):
    """No event or calendar matched the lookup."""


class InvalidTimezone(CalendarError):
    """A timezone identifier could not be resolved."""
