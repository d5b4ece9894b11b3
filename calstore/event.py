from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Literal, TypeAlias

from typing_extensions import override

from calstore.errors import InvalidInput, InvalidRange
from calstore.util import ALL_DAY_END, ALL_DAY_START, DEFAULT_DURATION

Visibility: TypeAlias = Literal["public", "private"]


def parse_visibility(value: "Visibility | str | bool") -> Visibility:
    """Map a visibility value to ``"public"`` or ``"private"``.

    Strings are compared case-insensitively against "public"; anything else is
    private. Booleans follow the ``is_public`` convention.
    """
    if isinstance(value, bool):
        return "public" if value else "private"
    if not isinstance(value, str):
        raise InvalidInput(
            f"Visibility must be a string or bool, got {type(value).__name__!r}"
        )
    return "public" if value.strip().lower() == "public" else "private"


def _check_subject(subject: Any) -> str:
    if not isinstance(subject, str) or not subject.strip():
        raise InvalidInput(f"Event subject cannot be empty, got {subject!r}")
    return subject


def _check_time(value: Any, edge: Literal["start", "end"]) -> datetime:
    if value is None:
        raise InvalidInput(f"Event {edge} date/time cannot be None")
    if not isinstance(value, datetime):
        raise InvalidInput(
            f"Event {edge} must be a datetime.\n"
            f"Got {type(value).__name__!r}: {value!r}\n"
            f"Hint: use datetime.combine(day, time) for a date plus a time of day"
        )
    if value.tzinfo is not None:
        raise InvalidInput(
            f"Event {edge} must be a naive wall-clock datetime.\n"
            f"Got timezone-aware datetime: {value!r}\n"
            f"Event times are local to the calendar that holds them; the\n"
            f"calendar's zone is applied when events are copied between calendars."
        )
    return value


@dataclass(frozen=True, kw_only=True)
class Event:
    """One calendar occurrence.

    Two events are equal when their subject, start and end are equal; the
    remaining fields never take part in equality or hashing.

    Attributes:
        subject: Event title, never empty
        start: Wall-clock start time
        end: Wall-clock end time, defaults to one hour after start
        location: Physical or online location
        description: Longer free-form description
        visibility: "public" or "private"
        series_id: Identifier shared by every occurrence of a recurring series
            (None for standalone events)
    """

    subject: str
    start: datetime
    end: datetime = None  # type: ignore[assignment]
    location: str = field(default="", compare=False)
    description: str = field(default="", compare=False)
    visibility: Visibility = field(default="public", compare=False)
    series_id: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        _check_subject(self.subject)
        _check_time(self.start, "start")
        if self.end is None:
            object.__setattr__(self, "end", self.start + DEFAULT_DURATION)
        _check_time(self.end, "end")
        if self.end < self.start:
            raise InvalidRange(
                f"Event end ({self.end}) must not precede start ({self.start})"
            )
        if self.visibility not in ("public", "private"):
            object.__setattr__(self, "visibility", parse_visibility(self.visibility))

    @classmethod
    def all_day(cls, subject: str, day: date, **fields: Any) -> "Event":
        """Create an all-day event, which spans the working day on ``day``."""
        if isinstance(day, datetime):
            day = day.date()
        return cls(
            subject=subject,
            start=datetime.combine(day, ALL_DAY_START),
            end=datetime.combine(day, ALL_DAY_END),
            **fields,
        )

    @property
    def key(self) -> tuple[str, datetime, datetime]:
        """The identity triple used for storage and conflict detection."""
        return (self.subject, self.start, self.end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    def with_subject(self, subject: str) -> "Event":
        return replace(self, subject=_check_subject(subject))

    def with_start(self, start: datetime) -> "Event":
        """Return a copy starting at ``start``.

        If the current end would then precede the start, the end snaps to one
        hour after the new start rather than failing.
        """
        start = _check_time(start, "start")
        end = self.end if self.end >= start else start + DEFAULT_DURATION
        return replace(self, start=start, end=end)

    def with_end(self, end: datetime) -> "Event":
        """Return a copy ending at ``end``.

        An end before the start snaps to one hour after the start instead of
        being rejected.
        """
        end = _check_time(end, "end")
        if end < self.start:
            end = self.start + DEFAULT_DURATION
        return replace(self, end=end)

    def with_location(self, location: str) -> "Event":
        return replace(self, location=location or "")

    def with_description(self, description: str) -> "Event":
        return replace(self, description=description or "")

    def with_visibility(self, visibility: "Visibility | str | bool") -> "Event":
        return replace(self, visibility=parse_visibility(visibility))

    def shifted_to(self, start: datetime) -> "Event":
        """Return a copy moved to ``start``, keeping its duration."""
        start = _check_time(start, "start")
        return replace(self, start=start, end=start + self.duration)

    @override
    def __str__(self) -> str:
        """Human-friendly string showing subject, range and duration."""
        return f"Event('{self.subject}', {self.start}→{self.end}, {self.duration})"
