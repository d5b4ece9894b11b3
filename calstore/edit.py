"""Edit propagation across recurring series.

An edit names a target event, one property and a new value. The scope decides
which events receive the change:

- ``single``: only the target
- ``this_and_future``: the target and every later occurrence of its series
- ``whole_series``: every occurrence of the target's series

Events outside a series are always edited as ``single``. Every edit removes the
old event and inserts the modified copy, since a changed subject, start or end
is a different event as far as the store is concerned. The modified copy keeps
the original ``series_id``.
"""

import logging
from collections.abc import Sequence
from datetime import date, datetime, time
from typing import Any, Literal, TypeAlias

from calstore.errors import DuplicateEvent, InvalidInput, InvalidProperty, NotFound
from calstore.event import Event
from calstore.store import EventStore, WriteResult

logger = logging.getLogger(__name__)

Scope: TypeAlias = Literal["single", "this_and_future", "whole_series"]
Property: TypeAlias = Literal[
    "subject", "start", "end", "location", "description", "visibility"
]

_SCOPES: dict[str, Scope] = {
    "single": "single",
    "this_and_future": "this_and_future",
    "future_and_this": "this_and_future",
    "future": "this_and_future",
    "whole_series": "whole_series",
    "series": "whole_series",
}

_PROPERTIES: dict[str, Property] = {
    "subject": "subject",
    "start": "start",
    "end": "end",
    "location": "location",
    "description": "description",
    "visibility": "visibility",
    # Accepted alias for visibility
    "status": "visibility",
}


def normalize_scope(scope: str) -> Scope:
    if not isinstance(scope, str):
        raise InvalidInput(f"Edit scope must be a string, got {scope!r}")
    key = scope.strip().lower().replace("-", "_").replace(" ", "_")
    if key == "futureandthis":
        key = "future_and_this"
    elif key == "wholeseries":
        key = "whole_series"
    if key not in _SCOPES:
        valid = ", ".join(sorted(set(_SCOPES.values())))
        raise InvalidInput(f"Invalid edit scope: '{scope}'\nValid scopes: {valid}")
    return _SCOPES[key]


def normalize_property(name: str) -> Property:
    key = name.strip().lower() if isinstance(name, str) else name
    if key not in _PROPERTIES:
        valid = ", ".join(sorted(set(_PROPERTIES.values())))
        raise InvalidProperty(f"Invalid property: '{name}'\nValid properties: {valid}")
    return _PROPERTIES[key]


def _coerce_datetime(value: Any, prop: str) -> datetime:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            raise InvalidInput(
                f"Invalid {prop} value: '{value}'\n"
                f"Expected an ISO date/time such as 2025-06-10T09:00"
            ) from None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            raise InvalidInput(
                f"Invalid {prop} value: {value!r}\n"
                f"Edits take naive wall-clock times in the calendar's zone"
            )
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise InvalidInput(
        f"Invalid {prop} value: expected datetime or ISO string, "
        f"got {type(value).__name__!r}"
    )


def _coerce_text(value: Any, prop: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidInput(
            f"Invalid {prop} value: expected text, got {type(value).__name__!r}"
        )
    return value


def modify(event: Event, prop: Property, value: Any) -> Event:
    """Return ``event`` with one property changed.

    Start and end changes go through the event's own setters, so an end that
    would precede the start snaps to one hour after it.
    """
    if prop == "subject":
        return event.with_subject(_coerce_text(value, prop))
    if prop == "start":
        return event.with_start(_coerce_datetime(value, prop))
    if prop == "end":
        return event.with_end(_coerce_datetime(value, prop))
    if prop == "location":
        return event.with_location(_coerce_text(value, prop))
    if prop == "description":
        return event.with_description(_coerce_text(value, prop))
    if prop == "visibility":
        return event.with_visibility(value)
    raise InvalidProperty(f"Invalid property: '{prop}'")


class EditPropagator:
    """Applies property edits to the events of one store."""

    def __init__(self, store: EventStore) -> None:
        self.store: EventStore = store

    def affected(self, scope: Scope | str, target: Event) -> list[Event]:
        """Return the stored events an edit of ``target`` at ``scope`` touches."""
        scope = normalize_scope(scope)
        if scope == "single" or target.series_id is None:
            return [target] if target in self.store else []
        members = self.store.series(target.series_id)
        if scope == "this_and_future":
            members = [event for event in members if event.start >= target.start]
        return members

    def apply(
        self, scope: Scope | str, target: Event, prop: Property | str, value: Any
    ) -> int:
        """Apply an edit and return how many events were modified.

        Raises:
            NotFound: If the target is not in the store
            InvalidProperty: If the property name is not editable
            DuplicateEvent: For single edits whose result collides with
                another stored event
        """
        return sum(result.success for result in self.apply_all(scope, target, prop, value))

    def apply_all(
        self, scope: Scope | str, target: Event, prop: Property | str, value: Any
    ) -> list[WriteResult]:
        """Apply an edit and return one WriteResult per affected event.

        Batch scopes never raise on conflicts: an occurrence whose modified form
        would collide with another event is left unchanged and reported as a
        failed result.
        """
        prop = normalize_property(prop)
        scope = normalize_scope(scope)
        if target not in self.store:
            raise NotFound(
                f"Event not found: '{target.subject}' "
                f"from {target.start} to {target.end}"
            )
        # Work on the stored copy so its non-identity fields are the ones edited
        target = self.store.get(target)

        if scope == "single" or target.series_id is None:
            return [self._apply_single(target, prop, value)]

        members = self.affected(scope, target)
        if prop in ("start", "end"):
            # Every occurrence moves by the same amount, keeping its own date
            delta = _coerce_datetime(value, prop) - getattr(target, prop)
            changes = [
                (event, modify(event, prop, getattr(event, prop) + delta))
                for event in members
            ]
        else:
            changes = [(event, modify(event, prop, value)) for event in members]

        results = self._commit(changes)
        logger.info(
            "Edited %s of %d occurrences in series %s (%s)",
            sum(result.success for result in results),
            len(results),
            target.series_id,
            prop,
        )
        return results

    def _apply_single(self, target: Event, prop: Property, value: Any) -> WriteResult:
        modified = modify(target, prop, value)
        if modified.key != target.key and self.store.has_conflict(modified):
            raise DuplicateEvent(
                f"Edit would duplicate an existing event: '{modified.subject}' "
                f"from {modified.start} to {modified.end}"
            )
        self.store.remove(target)
        self.store.add(modified)
        return WriteResult(success=True, event=modified, error=None)

    def _commit(self, changes: Sequence[tuple[Event, Event]]) -> list[WriteResult]:
        """Swap each original for its modified copy, skipping collisions.

        A change is skipped when its result would land on an event that stays
        where it is: an event outside the batch, an occurrence that was itself
        skipped, or an earlier accepted change. Skipped changes stay skipped, so
        the loop ends once a pass skips nothing new.
        """
        batch_keys = {original.key for original, _ in changes}
        fixed_keys = {event.key for event in self.store if event.key not in batch_keys}
        skipped: set[int] = set()

        while True:
            taken = fixed_keys | {changes[i][0].key for i in skipped}
            newly_skipped: set[int] = set()
            for i, (original, modified) in enumerate(changes):
                if i in skipped:
                    continue
                if modified.key in taken:
                    newly_skipped.add(i)
                else:
                    taken.add(modified.key)
            if not newly_skipped:
                break
            skipped |= newly_skipped

        for original, _ in changes:
            self.store.remove(original)

        results: list[WriteResult] = []
        for i, (original, modified) in enumerate(changes):
            if i in skipped:
                self.store.add(original)
                logger.debug("Skipped edit of %s: would duplicate %s", original, modified)
                results.append(
                    WriteResult(
                        success=False,
                        event=modified,
                        error=DuplicateEvent(
                            f"Edit would duplicate an existing event: "
                            f"'{modified.subject}' from {modified.start} to {modified.end}"
                        ),
                    )
                )
            else:
                self.store.add(modified)
                results.append(WriteResult(success=True, event=modified, error=None))
        return results
