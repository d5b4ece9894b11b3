"""In-memory event storage for a single calendar.

This module provides EventStore, the authoritative set of events for one
calendar. Events are kept flat, keyed by their identity triple
(subject, start, end); recurring series are plain ``series_id`` tags on the
events rather than separate objects.
"""

import bisect
import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

from calstore.errors import DuplicateEvent, InvalidInput, NotFound
from calstore.event import Event
from calstore.util import DAY

logger = logging.getLogger(__name__)

# Smallest datetime step, used to turn an exact start into a half-open range
_TICK = datetime.resolution


@dataclass(frozen=True)
class WriteResult:
    """Result of a write operation (add/remove/edit) on one event.

    Attributes:
        success: True if the operation succeeded, False otherwise
        event: The event written (or attempted) by the operation
        error: The exception that occurred if failed, None if successful
    """

    success: bool
    event: Event | None
    error: Exception | None


def _sort_key(event: Event) -> tuple[datetime, datetime, str]:
    return (event.start, event.end, event.subject)


class _Index:
    """Sorted snapshot of a store's events for range queries.

    Internal helper class used by EventStore; rebuilt lazily after mutations.
    """

    def __init__(self, events: Iterable[Event]):
        self._events: tuple[Event, ...] = tuple(sorted(events, key=_sort_key))

        # max_end_prefix[i] = max(event.end for event in events[:i+1])
        self._max_end_prefix: list[datetime] = []
        for event in self._events:
            if self._max_end_prefix and self._max_end_prefix[-1] > event.end:
                self._max_end_prefix.append(self._max_end_prefix[-1])
            else:
                self._max_end_prefix.append(event.end)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def overlapping(self, lo: datetime, hi: datetime) -> Iterator[Event]:
        """Yield events with ``end > lo`` and ``start < hi``, in start order."""
        # Everything before the first prefix max that passes lo ends too early
        start_idx = bisect.bisect_right(self._max_end_prefix, lo)
        # Everything from the first start at or after hi begins too late
        end_idx = bisect.bisect_left(self._events, hi, key=lambda e: e.start)

        for event in self._events[start_idx:end_idx]:
            if event.end > lo:
                yield event

    def starting_between(self, lo: datetime, hi: datetime) -> Sequence[Event]:
        """Return events with ``lo <= start < hi``."""
        start_idx = bisect.bisect_left(self._events, lo, key=lambda e: e.start)
        end_idx = bisect.bisect_left(self._events, hi, key=lambda e: e.start)
        return self._events[start_idx:end_idx]


class EventStore:
    """Mutable set of events belonging to one calendar.

    No two stored events may share the same (subject, start, end). Queries
    return lists sorted by start, end and subject.

    Slicing is an alias for ``events_in_range``:

        >>> store[datetime(2025, 6, 10):datetime(2025, 6, 11)]
    """

    def __init__(self, events: Iterable[Event] = ()) -> None:
        """Initialize an empty or pre-populated store.

        Args:
            events: Optional initial events (duplicates raise DuplicateEvent)
        """
        self._events: dict[tuple[str, datetime, datetime], Event] = {}
        self._index: _Index | None = None

        for event in events:
            self.add(event)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._sorted())

    def __contains__(self, event: object) -> bool:
        return isinstance(event, Event) and event.key in self._events

    def __getitem__(self, item: slice) -> list[Event]:
        if not isinstance(item, slice):
            raise TypeError(
                f"EventStore only supports slicing by datetime bounds.\n"
                f"Got {type(item).__name__!r}: {item!r}\n"
                f"Example: store[datetime(2025, 6, 1):datetime(2025, 7, 1)]"
            )
        return self.events_in_range(item.start, item.stop)

    def _sorted(self) -> _Index:
        if self._index is None:
            self._index = _Index(self._events.values())
        return self._index

    def _invalidate(self) -> None:
        self._index = None

    def add(self, event: Event) -> Event:
        """Insert ``event``.

        Raises:
            DuplicateEvent: If an event with the same subject, start and end exists
        """
        if event.key in self._events:
            raise DuplicateEvent(
                f"Event already exists: '{event.subject}' "
                f"from {event.start} to {event.end}"
            )
        self._events[event.key] = event
        self._invalidate()
        logger.debug("Added %s", event)
        return event

    def add_many(self, events: Iterable[Event]) -> list[WriteResult]:
        """Insert each event, skipping (not raising on) duplicates.

        Returns:
            One WriteResult per event, in input order
        """
        results: list[WriteResult] = []
        for event in events:
            try:
                self.add(event)
            except DuplicateEvent as e:
                logger.debug("Skipped conflicting %s", event)
                results.append(WriteResult(success=False, event=event, error=e))
            else:
                results.append(WriteResult(success=True, event=event, error=None))
        return results

    def remove(self, event: Event) -> Event:
        """Delete the stored event identity-equal to ``event`` and return it.

        Raises:
            NotFound: If no such event is stored
        """
        try:
            removed = self._events.pop(event.key)
        except KeyError:
            raise NotFound(
                f"Event not found: '{event.subject}' "
                f"from {event.start} to {event.end}"
            ) from None
        self._invalidate()
        logger.debug("Removed %s", removed)
        return removed

    def remove_series(self, event: Event) -> list[WriteResult]:
        """Remove every occurrence of ``event``'s series.

        For events without a series id this behaves like ``remove()``.
        """
        if event.series_id is None:
            try:
                removed = self.remove(event)
            except NotFound as e:
                return [WriteResult(success=False, event=event, error=e)]
            return [WriteResult(success=True, event=removed, error=None)]

        members = self.series(event.series_id)
        if not members:
            return [
                WriteResult(
                    success=False,
                    event=event,
                    error=NotFound(f"Series not found: {event.series_id}"),
                )
            ]
        return [
            WriteResult(success=True, event=self.remove(member), error=None)
            for member in members
        ]

    def get(self, event: Event) -> Event | None:
        """Return the stored event identity-equal to ``event``, if any."""
        return self._events.get(event.key)

    def find(self, subject: str, start: datetime) -> Event | None:
        """Return the single event with this subject and start.

        End time is not part of the lookup, so two events differing only by end
        are ambiguous; ambiguity returns None just like no match.
        """
        _check_bound(start, "start")
        matches = [
            event
            for event in self._sorted().starting_between(start, start + _TICK)
            if event.subject == subject and event.start == start
        ]
        if len(matches) != 1:
            if matches:
                logger.debug(
                    "Ambiguous lookup for '%s' at %s (%d matches)",
                    subject,
                    start,
                    len(matches),
                )
            return None
        return matches[0]

    def has_conflict(self, event: Event) -> bool:
        """True if an event with the same subject, start and end is stored."""
        return event.key in self._events

    def events_on(self, day: date) -> list[Event]:
        """Return events whose start falls on ``day``."""
        if isinstance(day, datetime):
            day = day.date()
        if not isinstance(day, date):
            raise InvalidInput(f"Expected a date, got {type(day).__name__!r}")
        midnight = datetime.combine(day, time.min)
        return list(self._sorted().starting_between(midnight, midnight + DAY))

    def events_in_range(self, lo: datetime, hi: datetime) -> list[Event]:
        """Return events overlapping the open interval ``(lo, hi)``.

        An event overlaps when ``end > lo`` and ``start < hi``; events that only
        touch a boundary are excluded.
        """
        _check_bound(lo, "start")
        _check_bound(hi, "end")
        return list(self._sorted().overlapping(lo, hi))

    def is_busy(self, instant: datetime) -> bool:
        """True if some event strictly contains ``instant``.

        An instant exactly at an event's start or end counts as free.
        """
        _check_bound(instant, "instant")
        return next(self._sorted().overlapping(instant, instant), None) is not None

    def series(self, series_id: str) -> list[Event]:
        """Return every stored occurrence of a series, sorted by start."""
        return [event for event in self._sorted() if event.series_id == series_id]


def _check_bound(bound: Any, edge: str) -> None:
    if not isinstance(bound, datetime):
        raise InvalidInput(
            f"Query {edge} must be a datetime.\n"
            f"Got {type(bound).__name__!r}: {bound!r}\n"
            f"Hint: for whole days use datetime.combine(day, time.min)"
        )
    if bound.tzinfo is not None:
        raise InvalidInput(
            f"Query {edge} must be a naive wall-clock datetime, got {bound!r}"
        )
