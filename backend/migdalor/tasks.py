# Overview: Wires the four daily maintenance tasks to the scheduler and the Flask app.

from __future__ import annotations

import atexit

from flask import Flask

from .extensions import db
from .scheduler import DailySchedule, ScheduledTask, SystemClock, TaskScheduler
from .services import attendance_service, event_instance_service, maintenance_service


SCHEDULER_EXTENSION_KEY = "migdalor.scheduler"

RECURRING_EVENTS_TASK = "recurring-events"
DAILY_ATTENDANCE_TASK = "daily-attendance"
LISTING_RETENTION_TASK = "listing-retention"
NOTICE_RETENTION_TASK = "notice-retention"


def _in_app_context(app: Flask, func):
    """Run func inside a fresh app context and release the session afterwards."""
    def run_once(should_stop):
        with app.app_context():
            try:
                return func(should_stop)
            finally:
                db.session.remove()
    return run_once


def build_scheduler(app: Flask, clock=None) -> TaskScheduler:
    tz_name = app.config.get("LOCAL_TIMEZONE")
    scheduler = TaskScheduler(clock or SystemClock(tz_name), tz_name=tz_name)

    scheduler.add_task(ScheduledTask(
        RECURRING_EVENTS_TASK,
        DailySchedule(hour=1),
        _in_app_context(app, lambda stop: event_instance_service.materialize_indefinite_events(should_stop=stop)),
    ))
    scheduler.add_task(ScheduledTask(
        DAILY_ATTENDANCE_TASK,
        DailySchedule(hour=int(app.config.get("ATTENDANCE_ROLLOVER_HOUR", 4))),
        _in_app_context(app, lambda stop: attendance_service.roll_over()),
    ))
    scheduler.add_task(ScheduledTask(
        LISTING_RETENTION_TASK,
        DailySchedule(hour=0),
        _in_app_context(app, lambda stop: maintenance_service.cleanup_listings(should_stop=stop)),
    ))
    scheduler.add_task(ScheduledTask(
        NOTICE_RETENTION_TASK,
        DailySchedule(hour=0),
        _in_app_context(app, lambda stop: maintenance_service.cleanup_notices(should_stop=stop)),
    ))
    return scheduler


def get_scheduler(app: Flask) -> TaskScheduler:
    scheduler = app.extensions.get(SCHEDULER_EXTENSION_KEY)
    if scheduler is None:
        scheduler = build_scheduler(app)
        app.extensions[SCHEDULER_EXTENSION_KEY] = scheduler
    return scheduler


def start_scheduler(app: Flask) -> TaskScheduler:
    """Start the daily jobs for this app; the loop is stopped at interpreter exit."""
    scheduler = get_scheduler(app)
    if not scheduler.is_running:
        scheduler.start()
        atexit.register(scheduler.shutdown)
        app.logger.info("Background scheduler started: %s", scheduler.next_fire_times())
    return scheduler
