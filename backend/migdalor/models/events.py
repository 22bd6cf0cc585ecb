from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from migdalor.time_utils import to_utc_z


INSTANCE_SCHEDULED = "Scheduled"
INSTANCE_CANCELLED = "Cancelled"
INSTANCE_RESCHEDULED = "Rescheduled"
INSTANCE_STATUSES = {INSTANCE_SCHEDULED, INSTANCE_CANCELLED, INSTANCE_RESCHEDULED}

DEFAULT_DURATION_MINUTES = 60


class Event(db.Model):
    """
    Event definition: a one-off activity or a recurring class.

    RECURRENCE:
    - recurrence_rule is an RFC 5545 RRULE (e.g. "FREQ=WEEKLY;BYDAY=MO,WE")
    - end_date NULL means the series runs indefinitely and is topped up daily
    - duration_minutes fixes the length of every generated occurrence
    """
    __tablename__ = "events"
    __table_args__ = (
        db.Index("ix_events_recurring_end", "is_recurring", "end_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    host_id = db.Column(db.Integer, db.ForeignKey("people.id"), nullable=True, index=True)
    location = db.Column(db.String(255), nullable=True)
    capacity = db.Column(db.Integer, nullable=True)

    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurrence_rule = db.Column(db.String(255), nullable=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=False, default=DEFAULT_DURATION_MINUTES)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    host = db.relationship("Person", backref=db.backref("hosted_events", lazy=True))

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes or DEFAULT_DURATION_MINUTES)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "host_id": self.host_id,
            "location": self.location,
            "capacity": self.capacity,
            "is_recurring": self.is_recurring,
            "recurrence_rule": self.recurrence_rule,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "duration_minutes": self.duration_minutes,
            "created_at": to_utc_z(self.created_at),
        }


class EventInstance(db.Model):
    """
    One concrete occurrence of an Event.

    Created by the materializer; status/notes are changed elsewhere
    (cancel, reschedule). (event_id, start_time) is unique.
    """
    __tablename__ = "event_instances"
    __table_args__ = (
        db.UniqueConstraint("event_id", "start_time", name="uq_event_instance_event_start"),
        db.Index("ix_event_instances_start", "start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=INSTANCE_SCHEDULED)
    notes = db.Column(db.Text, nullable=True)

    event = db.relationship("Event", backref=db.backref("instances", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "status": self.status,
            "notes": self.notes,
        }


class EventParticipation(db.Model):
    """Attendance of a resident at a single event occurrence."""
    __tablename__ = "event_participations"
    __table_args__ = (
        db.UniqueConstraint("instance_id", "resident_id", name="uq_participation_instance_resident"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    instance_id = db.Column(db.Integer, db.ForeignKey("event_instances.id"), nullable=False, index=True)
    resident_id = db.Column(db.Integer, db.ForeignKey("residents.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="Registered")  # Registered, Attended, Absent
    recorded_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    instance = db.relationship("EventInstance", backref=db.backref("participations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "instance_id": self.instance_id,
            "resident_id": self.resident_id,
            "status": self.status,
            "recorded_at": to_utc_z(self.recorded_at),
        }
