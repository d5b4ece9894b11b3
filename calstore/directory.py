"""Named, time-zoned calendars and copying events between them.

A ``CalendarDirectory`` owns any number of ``Calendar`` objects, each with a
unique name, an IANA timezone and its own ``EventStore``. Event times inside a
calendar are naive wall-clock times in that calendar's zone; copying an event
to another calendar converts through both zones so the copy happens at the
same absolute instant.

Example:
    >>> from datetime import date, datetime
    >>> from calstore import CalendarDirectory
    >>>
    >>> calendars = CalendarDirectory()
    >>> work = calendars.create("Work", "America/New_York")
    >>> calendars.create("Travel", "America/Los_Angeles")
    >>> work.create_single(
    ...     "Standup", datetime(2025, 7, 1, 9, 0), datetime(2025, 7, 1, 9, 15)
    ... )
    >>> calendars.use("Work")
    >>> calendars.copy_day(date(2025, 7, 1), "Travel", date(2025, 7, 1))
    1
"""

import logging
from collections.abc import Iterable, Iterator
from datetime import date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from calstore.edit import EditPropagator, Property, Scope
from calstore.errors import (
    DuplicateEvent,
    DuplicateName,
    InvalidInput,
    InvalidProperty,
    InvalidTimezone,
    NotFound,
)
from calstore.event import Event, Visibility
from calstore.recurrence import WeekdaySpec, recurring
from calstore.store import EventStore
from calstore.util import ALL_DAY_END, ALL_DAY_START

logger = logging.getLogger(__name__)


def resolve_zone(timezone: str) -> ZoneInfo:
    """Resolve an IANA zone identifier.

    Raises:
        InvalidTimezone: If the identifier is malformed or unknown
    """
    if not isinstance(timezone, str) or not timezone.strip():
        raise InvalidTimezone(f"Invalid timezone: {timezone!r}")
    try:
        return ZoneInfo(timezone.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise InvalidTimezone(
            f"Invalid timezone: '{timezone}'\n"
            f"Use an IANA zone name such as 'America/New_York' or 'UTC'"
        ) from e


def convert(local: datetime, source: ZoneInfo, target: ZoneInfo) -> datetime:
    """Re-express a wall-clock time in ``source`` as wall-clock time in ``target``.

    The conversion goes through the absolute instant, so daylight saving rules
    of both zones apply.
    """
    if not isinstance(local, datetime) or local.tzinfo is not None:
        raise InvalidInput(f"Expected a naive wall-clock datetime, got {local!r}")
    return local.replace(tzinfo=source).astimezone(target).replace(tzinfo=None)


def _check_day(day: Any, name: str) -> date:
    if isinstance(day, datetime):
        return day.date()
    if not isinstance(day, date):
        raise InvalidInput(f"{name} must be a date, got {type(day).__name__!r}")
    return day


class Calendar:
    """A named calendar bound to one timezone.

    Handles are what callers pass around instead of relying on the directory's
    active calendar; every event operation is available directly on them.
    """

    def __init__(self, name: str, timezone: str) -> None:
        self.name: str = name
        self.zone: ZoneInfo = resolve_zone(timezone)
        self.store: EventStore = EventStore()

    @property
    def timezone(self) -> str:
        return self.zone.key

    def __str__(self) -> str:
        return f"Calendar(name='{self.name}', timezone='{self.timezone}')"

    def __repr__(self) -> str:
        return f"Calendar({self.name!r}, {self.timezone!r}, events={len(self.store)})"

    def create_single(
        self,
        subject: str,
        start: datetime,
        end: datetime | None = None,
        *,
        location: str = "",
        description: str = "",
        visibility: Visibility | str = "public",
    ) -> Event:
        """Create and store one event.

        Raises:
            DuplicateEvent: If the same subject, start and end already exist
        """
        event = Event(
            subject=subject,
            start=start,
            end=end,  # type: ignore[arg-type]
            location=location,
            description=description,
            visibility=visibility,  # type: ignore[arg-type]
        )
        return self.store.add(event)

    def create_all_day(self, subject: str, day: date, **fields: Any) -> Event:
        """Create and store an all-day event on ``day``."""
        return self.store.add(Event.all_day(subject, day, **fields))

    def create_recurring_all_day(
        self,
        subject: str,
        first_day: date,
        days: WeekdaySpec,
        *,
        count: int | None = None,
        until: date | None = None,
        **fields: Any,
    ) -> list[Event]:
        """Create a recurring series of all-day events, starting on ``first_day``.

        Same rules as ``create_recurring``; every occurrence spans the all-day
        window.
        """
        first_day = _check_day(first_day, "first_day")
        return self.create_recurring(
            subject,
            datetime.combine(first_day, ALL_DAY_START),
            datetime.combine(first_day, ALL_DAY_END),
            days,
            count=count,
            until=until,
            **fields,
        )

    def create_recurring(
        self,
        subject: str,
        start: datetime,
        end: datetime,
        days: WeekdaySpec,
        *,
        count: int | None = None,
        until: date | None = None,
        **fields: Any,
    ) -> list[Event]:
        """Expand a weekday recurrence and store every occurrence.

        Creation is all-or-nothing: if any occurrence duplicates an existing
        event, nothing is stored.

        Args:
            subject: Subject of every occurrence
            start: First candidate date plus the start time of day
            end: End time of day for every occurrence
            days: Weekdays to repeat on (names, letter codes or numbers)
            count: Number of occurrences
            until: Last date (inclusive) an occurrence may fall on
            **fields: location, description, visibility

        Returns:
            The stored occurrences in date order

        Raises:
            DuplicateEvent: If any occurrence already exists
        """
        occurrences = recurring(days, count=count, until=until).expand(
            subject, start, end, **fields
        )
        for occurrence in occurrences:
            if self.store.has_conflict(occurrence):
                raise DuplicateEvent(
                    f"Recurring event would duplicate an existing event: "
                    f"'{occurrence.subject}' from {occurrence.start} to {occurrence.end}"
                )
        for occurrence in occurrences:
            self.store.add(occurrence)
        logger.debug(
            "Created %d occurrences of '%s' in %s", len(occurrences), subject, self.name
        )
        return occurrences

    def find(self, subject: str, start: datetime) -> Event | None:
        return self.store.find(subject, start)

    def events_on(self, day: date) -> list[Event]:
        return self.store.events_on(day)

    def events_in_range(self, lo: datetime, hi: datetime) -> list[Event]:
        return self.store.events_in_range(lo, hi)

    def is_busy(self, instant: datetime) -> bool:
        return self.store.is_busy(instant)

    def edit(
        self,
        scope: Scope | str,
        subject: str,
        start: datetime,
        prop: Property | str,
        value: Any,
    ) -> int:
        """Edit the event identified by ``subject`` and ``start``.

        Returns:
            Number of events modified

        Raises:
            NotFound: If no single event matches subject and start
            InvalidProperty: If ``prop`` is not editable
            DuplicateEvent: If a single-event edit would duplicate another event
        """
        target = self.store.find(subject, start)
        if target is None:
            raise NotFound(f"No single event '{subject}' starting at {start}")
        return EditPropagator(self.store).apply(scope, target, prop, value)


class CalendarDirectory:
    """Collection of uniquely named calendars with an optional active one."""

    def __init__(self) -> None:
        self._calendars: dict[str, Calendar] = {}
        self._active: str | None = None

    def __len__(self) -> int:
        return len(self._calendars)

    def __iter__(self) -> Iterator[Calendar]:
        return iter(self._calendars.values())

    def __contains__(self, name: object) -> bool:
        return name in self._calendars

    def names(self) -> set[str]:
        return set(self._calendars)

    def active_name(self) -> str | None:
        return self._active

    @property
    def active(self) -> Calendar:
        """The calendar selected with ``use()``.

        Raises:
            NotFound: If no calendar is in use
        """
        if self._active is None:
            raise NotFound("No calendar in use. Select one with use(name).")
        return self._calendars[self._active]

    def get(self, name: str) -> Calendar:
        try:
            return self._calendars[name]
        except KeyError:
            raise NotFound(f"Calendar not found: '{name}'") from None

    def create(self, name: str, timezone: str) -> Calendar:
        """Create a calendar.

        Raises:
            InvalidInput: If the name is empty
            DuplicateName: If a calendar with this name exists
            InvalidTimezone: If the zone cannot be resolved
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidInput(f"Calendar name cannot be empty, got {name!r}")
        if name in self._calendars:
            raise DuplicateName(f"Calendar name already exists: '{name}'")
        calendar = Calendar(name, timezone)
        self._calendars[name] = calendar
        logger.info("Created calendar '%s' (%s)", name, calendar.timezone)
        return calendar

    def use(self, name: str) -> Calendar:
        calendar = self.get(name)
        self._active = name
        return calendar

    def rename(self, name: str, new_name: str) -> Calendar:
        calendar = self.get(name)
        if not isinstance(new_name, str) or not new_name.strip():
            raise InvalidInput(f"Calendar name cannot be empty, got {new_name!r}")
        if new_name == name:
            return calendar
        if new_name in self._calendars:
            raise DuplicateName(f"New calendar name already exists: '{new_name}'")
        del self._calendars[name]
        calendar.name = new_name
        self._calendars[new_name] = calendar
        if self._active == name:
            self._active = new_name
        logger.info("Renamed calendar '%s' to '%s'", name, new_name)
        return calendar

    def retimezone(self, name: str, timezone: str) -> Calendar:
        """Change a calendar's zone. Stored wall-clock times are left as they are."""
        calendar = self.get(name)
        calendar.zone = resolve_zone(timezone)
        logger.info("Calendar '%s' now uses %s", name, calendar.timezone)
        return calendar

    def edit(self, name: str, prop: str, value: str) -> Calendar:
        """Edit a calendar's ``name`` or ``timezone`` (case-insensitive)."""
        key = prop.strip().lower() if isinstance(prop, str) else prop
        if key == "name":
            return self.rename(name, value)
        if key == "timezone":
            return self.retimezone(name, value)
        raise InvalidProperty(
            f"Unsupported calendar property: '{prop}'\nValid properties: name, timezone"
        )

    def delete(self, name: str) -> None:
        self.get(name)
        del self._calendars[name]
        if self._active == name:
            self._active = None
        logger.info("Deleted calendar '%s'", name)

    def _resolve(self, calendar: "str | Calendar | None") -> Calendar:
        if calendar is None:
            return self.active
        if isinstance(calendar, Calendar):
            return calendar
        return self.get(calendar)

    def copy_one(
        self,
        subject: str,
        start: datetime,
        target: "str | Calendar",
        dest_start: datetime,
        *,
        source: "str | Calendar | None" = None,
    ) -> bool:
        """Copy one event so that it starts at ``dest_start``.

        ``dest_start`` is read in the source calendar's zone and converted to
        the target's, as with the other copy operations.

        Returns:
            True if copied, False if the target already holds the same event

        Raises:
            NotFound: If a calendar or the source event does not exist
        """
        src = self._resolve(source)
        dst = self._resolve(target)
        event = src.find(subject, start)
        if event is None:
            raise NotFound(f"No single event '{subject}' starting at {start}")
        candidate = event.shifted_to(convert(dest_start, src.zone, dst.zone))
        if dst.store.has_conflict(candidate):
            logger.debug("Skipped copy of %s to '%s': conflict", event, dst.name)
            return False
        dst.store.add(candidate)
        return True

    def copy_day(
        self,
        day: date,
        target: "str | Calendar",
        dest_day: date,
        *,
        source: "str | Calendar | None" = None,
    ) -> int:
        """Copy every event starting on ``day`` to ``dest_day`` in ``target``.

        Each event keeps its time of day relative to midnight, converted from
        the source zone to the target zone.

        Returns:
            Number of events copied (conflicting copies are skipped)
        """
        day = _check_day(day, "day")
        dest_day = _check_day(dest_day, "dest_day")
        src = self._resolve(source)
        dst = self._resolve(target)
        return self._copy(
            src,
            dst,
            src.events_on(day),
            datetime.combine(day, time.min),
            datetime.combine(dest_day, time.min),
        )

    def copy_range(
        self,
        lo: datetime,
        hi: datetime,
        target: "str | Calendar",
        dest_start: datetime,
        *,
        source: "str | Calendar | None" = None,
    ) -> int:
        """Copy every event overlapping ``(lo, hi)`` so the range starts at ``dest_start``.

        Gaps between events are preserved; each copy sits at the same offset
        from ``dest_start`` as the original does from ``lo``.

        Returns:
            Number of events copied (conflicting copies are skipped)
        """
        src = self._resolve(source)
        dst = self._resolve(target)
        return self._copy(src, dst, src.events_in_range(lo, hi), lo, dest_start)

    def _copy(
        self,
        src: Calendar,
        dst: Calendar,
        events: Iterable[Event],
        reference: datetime,
        dest_reference: datetime,
    ) -> int:
        candidates = [
            event.shifted_to(
                convert(dest_reference + (event.start - reference), src.zone, dst.zone)
            )
            for event in events
        ]
        results = dst.store.add_many(candidates)
        copied = sum(result.success for result in results)
        logger.info(
            "Copied %d of %d events from '%s' to '%s'",
            copied,
            len(results),
            src.name,
            dst.name,
        )
        return copied
