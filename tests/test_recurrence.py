"""Tests for weekday recurrence expansion."""

from datetime import date, datetime, time

import pytest

from calstore import InvalidInput, InvalidRange, Recurrence, parse_weekdays, recurring

MONDAY = datetime(2025, 6, 2, 9, 0)
MONDAY_END = datetime(2025, 6, 2, 10, 0)


def test_math_class_three_occurrences():
    """Test Mon/Wed/Fri for count=3 starting on a Monday."""
    events = recurring("MWF", count=3).expand("Math Class", MONDAY, MONDAY_END)

    assert [e.start for e in events] == [
        datetime(2025, 6, 2, 9, 0),
        datetime(2025, 6, 4, 9, 0),
        datetime(2025, 6, 6, 9, 0),
    ]
    assert all(e.end.time() == time(10, 0) for e in events)
    assert all(e.end.date() == e.start.date() for e in events)


def test_occurrences_share_one_series_id():
    """Test that a whole expansion is stamped with one fresh series id."""
    first = recurring("TR", count=4).expand("Lab", MONDAY, MONDAY_END)
    second = recurring("TR", count=4).expand("Lab", MONDAY, MONDAY_END)

    assert len({e.series_id for e in first}) == 1
    assert first[0].series_id is not None
    assert first[0].series_id != second[0].series_id


@pytest.mark.parametrize("count", [1, 2, 5, 11])
def test_count_is_exact(count):
    """Test that count-based series have exactly count occurrences on the right days."""
    days = {0, 2, 4}
    events = Recurrence(days=frozenset(days), count=count).expand(
        "Class", MONDAY, MONDAY_END
    )

    assert len(events) == count
    assert all(e.start.weekday() in days for e in events)
    starts = [e.start for e in events]
    assert starts == sorted(starts)


@pytest.mark.parametrize("count", [0, -3])
def test_non_positive_count_is_empty(count):
    """Test that count <= 0 yields an empty series rather than an error."""
    assert recurring("MWF", count=count).expand("Class", MONDAY, MONDAY_END) == []


def test_empty_weekdays_is_empty():
    """Test that an empty weekday set never matches, for either termination rule."""
    assert recurring([], count=10).expand("Nothing", MONDAY, MONDAY_END) == []
    assert (
        recurring([], until=date(2025, 12, 31)).expand("Nothing", MONDAY, MONDAY_END)
        == []
    )


def test_until_is_inclusive():
    """Test that the until date itself can hold an occurrence."""
    events = recurring("F", until=date(2025, 6, 20)).expand("Review", MONDAY, MONDAY_END)

    assert [e.start.date() for e in events] == [
        date(2025, 6, 6),
        date(2025, 6, 13),
        date(2025, 6, 20),
    ]


def test_until_covers_every_qualifying_date():
    """Test that no qualifying date up to until is skipped and none after is added."""
    until = date(2025, 6, 30)
    events = recurring(["tuesday", "thursday"], until=until).expand(
        "Lab", MONDAY, MONDAY_END
    )

    expected = [
        d
        for d in (date(2025, 6, day) for day in range(2, 31))
        if d.weekday() in (1, 3)
    ]
    assert [e.start.date() for e in events] == expected
    assert all(e.start.date() <= until for e in events)


def test_until_before_first_occurrence_is_empty():
    """Test that an until date before the start yields nothing."""
    events = recurring("MWF", until=date(2025, 6, 1)).expand(
        "Class", MONDAY, MONDAY_END
    )
    assert events == []


def test_start_date_counts_when_it_qualifies():
    """Test that the walk begins on the start date itself."""
    events = recurring("M", count=1).expand("Kickoff", MONDAY, MONDAY_END)
    assert events[0].start == MONDAY


def test_start_date_skipped_when_not_a_qualifying_day():
    """Test that the first occurrence is the first qualifying day on or after start."""
    events = recurring("S", count=1).expand("Hike", MONDAY, MONDAY_END)
    assert events[0].start == datetime(2025, 6, 7, 9, 0)


def test_fields_applied_to_every_occurrence():
    """Test that extra fields reach every occurrence."""
    events = recurring("MW", count=2).expand(
        "Seminar", MONDAY, MONDAY_END, location="Room 4", visibility="private"
    )
    assert all(e.location == "Room 4" for e in events)
    assert all(e.visibility == "private" for e in events)


def test_termination_rule_required_exactly_once():
    """Test that count and until are mutually exclusive and one is required."""
    with pytest.raises(InvalidInput):
        recurring("MWF")
    with pytest.raises(InvalidInput):
        recurring("MWF", count=3, until=date(2025, 7, 1))


def test_end_time_before_start_time_rejected():
    """Test that occurrences cannot end before they start."""
    with pytest.raises(InvalidRange):
        recurring("M", count=2).expand(
            "Overnight", datetime(2025, 6, 2, 22, 0), datetime(2025, 6, 3, 1, 0)
        )


def test_parse_weekdays_forms():
    """Test the accepted weekday spellings."""
    assert parse_weekdays("MTWRFSU") == frozenset(range(7))
    assert parse_weekdays("mwf") == frozenset({0, 2, 4})
    assert parse_weekdays("Monday") == frozenset({0})
    assert parse_weekdays(["saturday", "sunday"]) == frozenset({5, 6})
    assert parse_weekdays([1, 3]) == frozenset({1, 3})
    assert parse_weekdays(4) == frozenset({4})
    assert parse_weekdays([]) == frozenset()


def test_parse_weekdays_rejects_unknown_tokens():
    """Test that unknown weekday tokens are errors."""
    with pytest.raises(InvalidInput):
        parse_weekdays("MXF")
    with pytest.raises(InvalidInput):
        parse_weekdays(["funday"])
    with pytest.raises(InvalidInput):
        parse_weekdays(7)


def test_recurrence_options_are_keyword_only():
    """Test that count and until must be passed by name."""
    with pytest.raises(TypeError):
        Recurrence(frozenset({0}), 3)  # type: ignore[misc]
