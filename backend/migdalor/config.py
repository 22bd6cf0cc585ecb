# backend/migdalor/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/migdalor.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///migdalor.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Pre-provisioned directories. The engine never creates these itself.
    REPORTS_DIR = os.environ.get(
        "MIGDALOR_REPORTS_DIR",
        os.path.join(os.getcwd(), "Reports", "Daily Attendance"),
    )
    UPLOADS_DIR = os.environ.get(
        "MIGDALOR_UPLOADS_DIR",
        os.path.join(os.getcwd(), "uploadedFiles"),
    )

    # Daily attendance rollover (local wall-clock hour)
    ATTENDANCE_ROLLOVER_HOUR = int(os.environ.get("ATTENDANCE_ROLLOVER_HOUR", "4"))
    ATTENDANCE_REPORT_PREFIX = os.environ.get("ATTENDANCE_REPORT_PREFIX", "DailyAttendance_Report")
    REPORT_RIGHT_TO_LEFT = _env_bool("REPORT_RIGHT_TO_LEFT", True)

    # IANA zone name (e.g. "Asia/Jerusalem"); None means the host's local time
    LOCAL_TIMEZONE = os.environ.get("LOCAL_TIMEZONE") or None

    SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", False)
