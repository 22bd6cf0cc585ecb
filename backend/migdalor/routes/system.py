# backend/migdalor/routes/system.py
"""
System health endpoint.

Reports database connectivity and the state of the background daily tasks.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Event, EventInstance, DailyAttendance
from ..tasks import get_scheduler
from migdalor.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        event_count = db.session.query(Event).count()
        instance_count = db.session.query(EventInstance).count()
        attendance_count = db.session.query(DailyAttendance).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "events": event_count,
                "event_instances": instance_count,
                "daily_attendance": attendance_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    scheduler = get_scheduler(current_app._get_current_object())
    body = {
        "status": database["status"],
        "time": to_utc_z(utcnow()),
        "database": database,
        "scheduler": scheduler.status(),
    }
    return jsonify(body), (200 if database["status"] == "healthy" else 503)
