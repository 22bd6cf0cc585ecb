# Overview: Service-layer operations for event instances; materializes and reconciles occurrences.

"""
Event Instance Service

Materializer:
- One-off events get a single instance at their start.
- Bounded recurring events (end_date set) are expanded over their full range
  when created or reconciled.
- Indefinite recurring events keep a rolling buffer: whenever less than
  TOP_UP_THRESHOLD of future instances remain, expand up to
  now + MATERIALIZE_HORIZON.
- Inserts only. (event_id, start_time) pairs that already exist are skipped.

Reconciler:
- On a change to start_date, end_date, recurrence_rule or duration, deletes
  instances that have not started yet and materializes again from now.
  Started instances and their participations are left alone.

Neither commits: the caller's commit is the unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta
from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Event, EventInstance, EventParticipation
from ..models.events import INSTANCE_SCHEDULED
from .concurrency import insert_ignoring_conflicts
from .recurrence import expand_occurrences
from migdalor.time_utils import utcnow


TOP_UP_THRESHOLD = relativedelta(months=1)
MATERIALIZE_HORIZON = relativedelta(months=3)


@dataclass(frozen=True)
class ReconcileSummary:
    event_id: int
    pruned: int
    created: int


@dataclass
class MaterializeSummary:
    processed: int = 0
    created: int = 0
    failed_event_ids: list[int] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_event_ids)


def latest_instance_start(event_id: int) -> datetime | None:
    return (
        db.session.query(func.max(EventInstance.start_time))
        .filter(EventInstance.event_id == event_id)
        .scalar()
    )


def _is_recurring(event: Event) -> bool:
    return bool(event.is_recurring and event.recurrence_rule and event.recurrence_rule.strip())


def _materialization_window(event: Event, now: datetime, not_before: datetime | None) -> tuple[datetime, datetime] | None:
    """Return the [start, end) window to expand for this event, or None when nothing is due."""
    if not _is_recurring(event):
        window = (event.start_date, event.start_date + event.duration)
    elif event.end_date is not None:
        window = (event.start_date, event.end_date + event.duration)
    else:
        latest = latest_instance_start(event.id)
        if latest is not None and latest >= now + TOP_UP_THRESHOLD:
            return None
        window = (latest or event.start_date, now + MATERIALIZE_HORIZON)

    start, end = window
    if not_before is not None and not_before > start:
        start = not_before
    if end <= start:
        return None
    return start, end


def materialize_event(event: Event, *, now: datetime | None = None, not_before: datetime | None = None) -> int:
    """
    Insert the instances this event is missing; returns how many were created.

    not_before drops every occurrence starting before it, including one
    already in progress (used after pruning so a rule change never
    back-fills the past).
    """
    now = now or utcnow()
    window = _materialization_window(event, now, not_before)
    if window is None:
        return 0
    window_start, window_end = window

    rule = event.recurrence_rule if _is_recurring(event) else None
    series_end = event.end_date if _is_recurring(event) else None
    occurrences = expand_occurrences(
        event.start_date,
        series_end,
        rule,
        window_start,
        window_end,
        duration=event.duration,
    )
    if not_before is not None:
        # Occurrences already under way at not_before are never regenerated.
        occurrences = [occ for occ in occurrences if occ.start >= not_before]
    if not occurrences:
        return 0

    existing = {
        row[0]
        for row in db.session.query(EventInstance.start_time).filter(
            EventInstance.event_id == event.id,
            EventInstance.start_time >= occurrences[0].start,
            EventInstance.start_time <= occurrences[-1].start,
        )
    }
    rows = [
        {
            "event_id": event.id,
            "start_time": occ.start,
            "end_time": occ.end,
            "status": INSTANCE_SCHEDULED,
            "notes": occ.note,
        }
        for occ in occurrences
        if occ.start not in existing
    ]
    created = insert_ignoring_conflicts(EventInstance, rows)
    if created:
        current_app.logger.info("Added %s new instances for event %s (%s)", created, event.id, event.name)
    return created


def prune_future_instances(event: Event, *, now: datetime) -> int:
    """Delete instances of this event that start at or after now, with their participations."""
    future_ids = [
        row[0]
        for row in db.session.query(EventInstance.id).filter(
            EventInstance.event_id == event.id,
            EventInstance.start_time >= now,
        )
    ]
    if not future_ids:
        return 0

    db.session.query(EventParticipation).filter(
        EventParticipation.instance_id.in_(future_ids)
    ).delete(synchronize_session=False)
    deleted = db.session.query(EventInstance).filter(
        EventInstance.id.in_(future_ids)
    ).delete(synchronize_session=False)
    db.session.expire_all()
    return deleted


def reconcile_event(event: Event, *, now: datetime | None = None) -> ReconcileSummary:
    """
    Replace the not-yet-started instances of an edited event.

    Runs inside the caller's transaction: prune and regenerate become
    visible together on commit.
    """
    now = now or utcnow()
    pruned = prune_future_instances(event, now=now)
    created = materialize_event(event, now=now, not_before=now)
    current_app.logger.info(
        "Reconciled event %s: pruned %s future instances, created %s",
        event.id, pruned, created,
    )
    return ReconcileSummary(event_id=event.id, pruned=pruned, created=created)


def materialize_indefinite_events(
    *,
    now: datetime | None = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> MaterializeSummary:
    """
    Daily pass: top up every indefinitely recurring event.

    Each event is its own unit of work. A failure is logged, rolled back and
    skipped; the pass continues with the next event.
    """
    now = now or utcnow()
    summary = MaterializeSummary()
    event_ids = [
        row[0]
        for row in db.session.query(Event.id).filter(
            Event.is_recurring.is_(True),
            Event.end_date.is_(None),
            Event.recurrence_rule.isnot(None),
        ).order_by(Event.id)
    ]
    current_app.logger.info("Recurring event pass started for %s indefinite events", len(event_ids))

    for event_id in event_ids:
        if should_stop and should_stop():
            current_app.logger.info("Recurring event pass interrupted by shutdown")
            break
        try:
            event = db.session.get(Event, event_id)
            if event is None:
                continue
            summary.created += materialize_event(event, now=now)
            db.session.commit()
        except Exception:
            db.session.rollback()
            summary.failed_event_ids.append(event_id)
            current_app.logger.exception("Failed to materialize instances for event %s", event_id)
        finally:
            summary.processed += 1

    current_app.logger.info(
        "Recurring event pass finished: %s processed, %s instances created, %s failed",
        summary.processed, summary.created, summary.failed,
    )
    return summary
