"""Recurring event generation over fixed sets of weekdays.

A ``Recurrence`` describes which weekdays an event repeats on and when the
repetition stops (after a number of occurrences or on an inclusive last date).
Expanding it against a subject and a start/end pair yields concrete ``Event``
objects that share one series id. The day walk itself is delegated to
python-dateutil's rrule implementation.
"""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Literal, TypeAlias

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, rrule, weekday

from calstore.errors import InvalidInput, InvalidRange
from calstore.event import Event

Day: TypeAlias = Literal[
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
]

# Mapping from day names to dateutil weekday constants
_DAY_MAP: dict[Day, weekday] = {
    "monday": MO,
    "tuesday": TU,
    "wednesday": WE,
    "thursday": TH,
    "friday": FR,
    "saturday": SA,
    "sunday": SU,
}

# Single-letter codes used by the calendar command language ("MWF", "TR", ...)
_LETTER_MAP: dict[str, weekday] = {
    "M": MO,
    "T": TU,
    "W": WE,
    "R": TH,
    "F": FR,
    "S": SA,
    "U": SU,
}

WeekdaySpec: TypeAlias = "Day | str | int | weekday | Iterable[Day | str | int | weekday]"


def _parse_one(token: Any) -> list[weekday]:
    if isinstance(token, weekday):
        return [weekday(token.weekday)]
    if isinstance(token, bool):
        raise InvalidInput(f"Invalid weekday: {token!r}")
    if isinstance(token, int):
        if not 0 <= token <= 6:
            raise InvalidInput(
                f"Invalid weekday number: {token}\n"
                f"Use 0 for Monday through 6 for Sunday, as datetime.weekday() does"
            )
        return [weekday(token)]
    if isinstance(token, str):
        name = token.strip().lower()
        if name in _DAY_MAP:
            return [_DAY_MAP[name]]  # type: ignore[index]
        days: list[weekday] = []
        for letter in token.strip().upper():
            if letter not in _LETTER_MAP:
                valid = ", ".join(_DAY_MAP.keys())
                raise InvalidInput(
                    f"Invalid weekday: '{token}'\n"
                    f"Valid days: {valid}\n"
                    f"Or letter codes: M T W R F S U (e.g. 'MWF')"
                )
            days.append(_LETTER_MAP[letter])
        return days
    raise InvalidInput(f"Invalid weekday: {token!r}")


def parse_weekdays(days: WeekdaySpec) -> frozenset[int]:
    """Normalize a weekday specification to a set of ``datetime.weekday()`` ints.

    Accepts a day name ("monday"), a letter code ("MWF"), a weekday number,
    a dateutil weekday constant, or any iterable of those. An empty iterable
    gives an empty set.

    Raises:
        InvalidInput: If any token is not a recognizable weekday
    """
    if isinstance(days, (str, int, weekday)):
        tokens: Iterable[Any] = [days]
    else:
        tokens = days
    parsed: set[int] = set()
    for token in tokens:
        parsed.update(wd.weekday for wd in _parse_one(token))
    return frozenset(parsed)


def new_series_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, kw_only=True)
class Recurrence:
    """Weekday recurrence with a count or an inclusive until-date.

    Attributes:
        days: Weekdays to repeat on, as ``datetime.weekday()`` ints
        count: Number of occurrences to generate
        until: Last date (inclusive) an occurrence may fall on
    """

    days: frozenset[int] = field(default_factory=frozenset)
    count: int | None = None
    until: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "days", parse_weekdays(self.days))
        if (self.count is None) == (self.until is None):
            raise InvalidInput(
                "A recurrence needs exactly one termination rule.\n"
                f"Got count={self.count!r}, until={self.until!r}\n"
                "Example: recurring('MWF', count=6) or "
                "recurring('TR', until=date(2025, 6, 30))"
            )
        if isinstance(self.until, datetime):
            object.__setattr__(self, "until", self.until.date())

    def _rule(self, start: datetime) -> rrule | None:
        if not self.days:
            return None
        byweekday = [weekday(d) for d in sorted(self.days)]
        if self.count is not None:
            if self.count <= 0:
                return None
            return rrule(DAILY, dtstart=start, byweekday=byweekday, count=self.count)
        assert self.until is not None
        return rrule(
            DAILY,
            dtstart=start,
            byweekday=byweekday,
            until=datetime.combine(self.until, time.max),
        )

    def dates(self, start: datetime) -> list[date]:
        """Return the qualifying dates, in ascending order, beginning at ``start``."""
        rule = self._rule(start)
        if rule is None:
            return []
        return [occurrence.date() for occurrence in rule]

    def expand(
        self, subject: str, start: datetime, end: datetime, **fields: Any
    ) -> list[Event]:
        """Materialize the series for ``subject``.

        Every occurrence takes its time of day from ``start`` and ``end`` and its
        date from the walk. All occurrences share one freshly generated series id.

        Args:
            subject: Subject of every occurrence
            start: First candidate date plus the start time of day
            end: End time of day (only its time component is used)
            **fields: Other Event fields (location, description, visibility)

        Raises:
            InvalidRange: If the end time of day precedes the start time of day
        """
        if not isinstance(start, datetime) or not isinstance(end, datetime):
            raise InvalidInput(
                f"Recurring events need start and end datetimes, "
                f"got start={start!r}, end={end!r}"
            )
        if end.time() < start.time():
            raise InvalidRange(
                f"Occurrence end time ({end.time()}) must not precede "
                f"start time ({start.time()})"
            )
        series_id = new_series_id()
        return [
            Event(
                subject=subject,
                start=datetime.combine(day, start.time()),
                end=datetime.combine(day, end.time()),
                series_id=series_id,
                **fields,
            )
            for day in self.dates(start)
        ]


def recurring(
    days: WeekdaySpec, *, count: int | None = None, until: date | None = None
) -> Recurrence:
    """
    Create a weekday recurrence.

    Args:
        days: Day name(s), letter code(s) or weekday number(s)
        count: Stop after this many occurrences (0 or less gives an empty series)
        until: Stop after this date (inclusive)

    Returns:
        Recurrence ready to be expanded

    Examples:
        >>> from datetime import date, datetime
        >>> from calstore.recurrence import recurring
        >>>
        >>> # Mon/Wed/Fri, three times
        >>> math = recurring("MWF", count=3).expand(
        ...     "Math Class",
        ...     datetime(2025, 6, 2, 9, 0),
        ...     datetime(2025, 6, 2, 10, 0),
        ... )
        >>>
        >>> # Every Tuesday and Thursday through the end of June
        >>> lab = recurring(["tuesday", "thursday"], until=date(2025, 6, 30))
    """
    return Recurrence(days=parse_weekdays(days), count=count, until=until)
