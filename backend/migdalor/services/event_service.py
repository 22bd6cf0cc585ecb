# Overview: Service-layer operations for event definitions; the write path that keeps instances in sync.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Event, EventInstance, EventParticipation
from .concurrency import lock_for_update
from .event_instance_service import materialize_event, reconcile_event
from migdalor.time_utils import parse_iso_datetime, utcnow


class EventError(ValueError):
    """Raised for invalid event operations."""
    pass


class EventNotFoundError(EventError):
    """Raised when an event id does not exist."""
    pass


WRITABLE_FIELDS = {
    "name",
    "description",
    "host_id",
    "location",
    "capacity",
    "is_recurring",
    "recurrence_rule",
    "start_date",
    "end_date",
    "duration_minutes",
}

# A change to any of these invalidates the not-yet-started instances.
RECURRENCE_FIELDS = ("start_date", "end_date", "recurrence_rule", "duration_minutes")


def _coerce_datetime(value, field_name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return parse_iso_datetime(value)
        except ValueError:
            raise EventError(f"{field_name} must be an ISO-8601 datetime")
    raise EventError(f"{field_name} must be an ISO-8601 datetime")


def _clean_fields(fields: dict) -> dict:
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise EventError(f"Unknown fields: {', '.join(sorted(unknown))}")

    cleaned = dict(fields)
    for key in ("start_date", "end_date"):
        if key in cleaned:
            cleaned[key] = _coerce_datetime(cleaned[key], key)

    if "is_recurring" in cleaned and not isinstance(cleaned["is_recurring"], bool):
        raise EventError("is_recurring must be true or false")

    if "name" in cleaned:
        name = (cleaned["name"] or "").strip()
        if not name:
            raise EventError("name is required")
        cleaned["name"] = name

    if "recurrence_rule" in cleaned:
        rule = (cleaned["recurrence_rule"] or "").strip()
        cleaned["recurrence_rule"] = rule or None

    for key in ("capacity", "duration_minutes"):
        value = cleaned.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise EventError(f"{key} must be a positive integer")

    return cleaned


def _validate_event(event: Event) -> None:
    if event.start_date is None:
        raise EventError("start_date is required")
    if event.end_date is not None and event.end_date < event.start_date:
        raise EventError("end_date must not be before start_date")
    if event.is_recurring and not event.recurrence_rule:
        raise EventError("recurrence_rule is required for recurring events")


def get_event(event_id: int) -> Event:
    event = db.session.get(Event, event_id)
    if not event:
        raise EventNotFoundError("Event not found")
    return event


def create_event(*, now: datetime | None = None, **fields) -> Event:
    """Create an event and materialize its first instances in the same commit."""
    cleaned = _clean_fields(fields)
    if "name" not in cleaned:
        raise EventError("name is required")

    event = Event(**cleaned)
    if not event.is_recurring:
        # One-off events span a single day.
        event.recurrence_rule = None
        event.end_date = event.start_date
    _validate_event(event)

    try:
        db.session.add(event)
        db.session.flush()
        materialize_event(event, now=now or utcnow())
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return event


def update_event(event_id: int, *, now: datetime | None = None, **fields) -> Event:
    """
    Update an event definition.

    When a recurrence-affecting field changes, future instances are
    reconciled inside the same transaction as the edit.
    """
    cleaned = _clean_fields(fields)
    event = lock_for_update(db.session.query(Event).filter_by(id=event_id)).first()
    if not event:
        raise EventNotFoundError("Event not found")

    before = {key: getattr(event, key) for key in RECURRENCE_FIELDS}
    for key, value in cleaned.items():
        setattr(event, key, value)
    if not event.is_recurring:
        event.recurrence_rule = None
        event.end_date = event.start_date

    try:
        _validate_event(event)
        changed = any(getattr(event, key) != before[key] for key in RECURRENCE_FIELDS)
        if changed:
            db.session.flush()
            reconcile_event(event, now=now or utcnow())
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return event


def delete_event(event_id: int) -> None:
    """Delete an event: participations, then instances, then the definition."""
    event = get_event(event_id)
    instance_ids = [row[0] for row in db.session.query(EventInstance.id).filter_by(event_id=event.id)]
    try:
        if instance_ids:
            db.session.query(EventParticipation).filter(
                EventParticipation.instance_id.in_(instance_ids)
            ).delete(synchronize_session=False)
            db.session.query(EventInstance).filter(
                EventInstance.id.in_(instance_ids)
            ).delete(synchronize_session=False)
        db.session.query(Event).filter(Event.id == event.id).delete(synchronize_session="evaluate")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def list_instances(event_id: int, *, start: datetime | None = None, end: datetime | None = None) -> list[EventInstance]:
    get_event(event_id)
    query = db.session.query(EventInstance).filter(EventInstance.event_id == event_id)
    if start:
        query = query.filter(EventInstance.start_time >= start)
    if end:
        query = query.filter(EventInstance.start_time < end)
    return query.order_by(EventInstance.start_time.asc()).all()
