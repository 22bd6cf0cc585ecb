"""
Recurrence expansion tests.

The expander is pure: no app context or database is needed here.
"""

from datetime import datetime, timedelta

from migdalor.services.recurrence import (
    FALLBACK_NOTE,
    RuleParseError,
    expand_occurrences,
    parse_rule,
)

import pytest


JAN_1 = datetime(2025, 1, 1)
FEB_1 = datetime(2025, 2, 1)


def test_weekly_rule_yields_each_monday_in_window():
    occurrences = expand_occurrences(JAN_1, None, "FREQ=WEEKLY;BYDAY=MO", JAN_1, FEB_1)

    assert [o.start for o in occurrences] == [
        datetime(2025, 1, 6),
        datetime(2025, 1, 13),
        datetime(2025, 1, 20),
        datetime(2025, 1, 27),
    ]
    assert all(o.end - o.start == timedelta(hours=1) for o in occurrences)
    assert all(o.note is None for o in occurrences)


def test_empty_window_yields_nothing():
    assert expand_occurrences(JAN_1, None, "FREQ=DAILY", FEB_1, FEB_1) == []
    assert expand_occurrences(JAN_1, None, "FREQ=DAILY", FEB_1, JAN_1) == []


def test_malformed_rule_falls_back_to_single_occurrence():
    occurrences = expand_occurrences(JAN_1, None, "FREQ=SOMETIMES;BYDAY=XX", JAN_1, FEB_1)

    assert len(occurrences) == 1
    assert occurrences[0].start == JAN_1
    assert occurrences[0].end == JAN_1 + timedelta(hours=1)
    assert occurrences[0].note == FALLBACK_NOTE


def test_parse_rule_raises_rule_parse_error():
    with pytest.raises(RuleParseError):
        parse_rule("NOT A RULE", JAN_1)


def test_series_end_is_inclusive():
    occurrences = expand_occurrences(JAN_1, datetime(2025, 1, 3), "FREQ=DAILY", JAN_1, FEB_1)

    assert [o.start.day for o in occurrences] == [1, 2, 3]


def test_empty_rule_is_a_single_occurrence():
    occurrences = expand_occurrences(JAN_1, None, "  ", JAN_1, FEB_1, duration=timedelta(minutes=90))

    assert occurrences == [(JAN_1, JAN_1 + timedelta(minutes=90), None)]


def test_single_occurrence_outside_window_is_dropped():
    assert expand_occurrences(JAN_1, None, None, FEB_1, FEB_1 + timedelta(days=1)) == []


def test_property_prefix_and_count_are_accepted():
    occurrences = expand_occurrences(JAN_1, None, "RRULE:FREQ=DAILY;COUNT=2", JAN_1, FEB_1)

    assert [o.start for o in occurrences] == [JAN_1, JAN_1 + timedelta(days=1)]


def test_utc_until_is_read_in_series_reference():
    occurrences = expand_occurrences(JAN_1, None, "FREQ=DAILY;UNTIL=20250103T000000Z", JAN_1, FEB_1)

    assert len(occurrences) == 3


def test_occurrence_overlapping_window_start_is_included():
    start = datetime(2025, 1, 6, 9, 0)
    occurrences = expand_occurrences(
        start,
        None,
        "FREQ=WEEKLY",
        datetime(2025, 1, 6, 10, 0),
        datetime(2025, 1, 6, 12, 0),
        duration=timedelta(hours=2),
    )

    assert [o.start for o in occurrences] == [start]


def test_results_are_ordered_without_duplicate_starts():
    occurrences = expand_occurrences(JAN_1, None, "FREQ=WEEKLY;BYDAY=MO,MO,WE", JAN_1, FEB_1)
    starts = [o.start for o in occurrences]

    assert starts == sorted(set(starts))
    assert len(starts) == 9


@pytest.mark.parametrize("rule", ["FREQ=DAILY;INTERVAL=0", "FREQ=WEEKLY;INTERVAL=-1;BYDAY=MO"])
def test_non_advancing_interval_falls_back_to_single_occurrence(rule):
    with pytest.raises(RuleParseError):
        parse_rule(rule, JAN_1)

    occurrences = expand_occurrences(JAN_1, None, rule, JAN_1, FEB_1)

    assert occurrences == [(JAN_1, JAN_1 + timedelta(hours=1), FALLBACK_NOTE)]
