# Overview: Pure RRULE expansion; turns an event definition into concrete occurrence intervals.

"""
Recurrence expansion.

No database and no Flask app: callers pass plain datetimes and get back a
list of Occurrence values. All datetimes are naive and share one reference
(UTC-naive for persisted events).

RFC 5545 parsing is delegated to python-dateutil behind parse_rule().
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from dateutil.rrule import rrule, rruleset, rrulestr

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=1)
FALLBACK_NOTE = "Could not parse recurrence rule."


class RuleParseError(ValueError):
    """Raised when a recurrence rule cannot be parsed or evaluated."""
    pass


class Occurrence(NamedTuple):
    start: datetime
    end: datetime
    note: Optional[str] = None


def parse_rule(rule: str, series_start: datetime) -> rrule | rruleset:
    """
    Parse an RRULE string anchored at series_start.

    Accepts the bare form ("FREQ=WEEKLY;BYDAY=MO") and the property form
    ("RRULE:FREQ=WEEKLY;BYDAY=MO"). UNTIL values are read as naive, in the
    same reference as series_start.
    """
    text = rule.strip()
    try:
        parsed = rrulestr(text, dtstart=series_start, ignoretz=True)
    except (ValueError, TypeError, KeyError, OverflowError) as exc:
        raise RuleParseError(f"Invalid recurrence rule {rule!r}: {exc}") from exc

    # dateutil accepts INTERVAL=0 (or negative) and then never advances.
    rules = parsed._rrule if isinstance(parsed, rruleset) else [parsed]
    for r in rules:
        if r._interval < 1:
            raise RuleParseError(f"Invalid recurrence rule {rule!r}: INTERVAL must be a positive integer")
    return parsed


def _intersects(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> bool:
    return start < window_end and end > window_start


def _single(series_start: datetime, duration: timedelta, window_start: datetime,
            window_end: datetime, note: Optional[str] = None) -> list[Occurrence]:
    end = series_start + duration
    if not _intersects(series_start, end, window_start, window_end):
        return []
    return [Occurrence(series_start, end, note)]


def expand_occurrences(
    series_start: datetime,
    series_end: Optional[datetime],
    rule: Optional[str],
    window_start: datetime,
    window_end: datetime,
    *,
    duration: timedelta = DEFAULT_DURATION,
) -> list[Occurrence]:
    """
    Expand a recurrence into the occurrences intersecting [window_start, window_end).

    - Empty/None rule: a single occurrence at series_start.
    - series_end (inclusive) bounds occurrence starts; None means indefinite.
    - window_end <= window_start: empty list.
    - Unparsable rule: a single occurrence at series_start carrying
      FALLBACK_NOTE. Never raises for bad rules.

    Result is ordered by start and has no duplicate starts.
    """
    if window_end <= window_start:
        return []

    if not rule or not rule.strip():
        return _single(series_start, duration, window_start, window_end)

    # An occurrence that started before the window can still overlap it.
    search_start = max(series_start, window_start - duration)
    search_end = window_end
    if series_end is not None:
        if series_end < search_start:
            return []
        search_end = min(search_end, series_end)

    try:
        recurrence = parse_rule(rule, series_start)
        starts = recurrence.between(search_start, search_end, inc=True)
    except RuleParseError:
        logger.warning("Unparsable recurrence rule %r; falling back to a single occurrence", rule)
        return _single(series_start, duration, window_start, window_end, FALLBACK_NOTE)
    except (ValueError, TypeError, OverflowError):
        logger.warning("Recurrence rule %r failed during expansion; falling back to a single occurrence", rule)
        return _single(series_start, duration, window_start, window_end, FALLBACK_NOTE)

    occurrences: list[Occurrence] = []
    seen: set[datetime] = set()
    for start in sorted(starts):
        if start in seen:
            continue
        seen.add(start)
        end = start + duration
        if _intersects(start, end, window_start, window_end):
            occurrences.append(Occurrence(start, end))
    return occurrences
