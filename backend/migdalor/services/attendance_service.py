# Overview: Service-layer operations for daily attendance; archives yesterday and provisions today.

"""
Daily Attendance Rollover

Runs once a day (default 04:00 local):
1. Archive: yesterday's rows, joined with resident names and phones, are
   written to the daily report file. A missing report directory is logged
   as critical and only this step is skipped.
2. Provision: every active resident without a row for today gets one
   (has_signed_in=False). Insert-if-absent, so a repeated run or a
   concurrent writer never produces a duplicate.

Both steps recompute their selection from the database, so re-running a day
is safe.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import DailyAttendance, Person, Resident
from .concurrency import insert_ignoring_conflicts
from .report_service import (
    AttendanceReportRow,
    NOT_AVAILABLE,
    ReportDirectoryMissing,
    UNKNOWN_RESIDENT,
    write_attendance_report,
)
from migdalor.time_utils import local_now, utc_to_local


@dataclass(frozen=True)
class RolloverSummary:
    archive_date: date
    provision_date: date
    report_path: str | None
    archived: int
    provisioned: int


def collect_report_rows(attendance_date: date, *, tz_name: str | None = None) -> list[AttendanceReportRow]:
    rows = (
        db.session.query(DailyAttendance, Person)
        .outerjoin(Person, Person.id == DailyAttendance.resident_id)
        .filter(DailyAttendance.attendance_date == attendance_date)
        .order_by(Person.last_name.asc(), Person.first_name.asc(), DailyAttendance.id.asc())
        .all()
    )

    report_rows = []
    for record, person in rows:
        sign_in = NOT_AVAILABLE
        if record.has_signed_in and record.sign_in_time:
            sign_in = utc_to_local(record.sign_in_time, tz_name).strftime("%H:%M")
        report_rows.append(AttendanceReportRow(
            full_name=person.full_name if person else UNKNOWN_RESIDENT,
            phone_number=(person.phone_number if person else None) or NOT_AVAILABLE,
            has_signed_in=bool(record.has_signed_in),
            sign_in_time=sign_in,
        ))
    return report_rows


def archive_day(attendance_date: date, *, reports_dir: str | None = None) -> tuple[str | None, int]:
    """
    Write the report for one attendance date.

    Returns (path, row count); path is None when there was nothing to
    archive. Raises ReportDirectoryMissing if the directory is absent.
    """
    config = current_app.config
    rows = collect_report_rows(attendance_date, tz_name=config.get("LOCAL_TIMEZONE"))
    if not rows:
        current_app.logger.info("No attendance data for %s; skipping report generation", attendance_date)
        return None, 0

    path = write_attendance_report(
        rows,
        report_date=attendance_date,
        directory=reports_dir or config["REPORTS_DIR"],
        prefix=config.get("ATTENDANCE_REPORT_PREFIX", "DailyAttendance_Report"),
        right_to_left=bool(config.get("REPORT_RIGHT_TO_LEFT", False)),
    )
    current_app.logger.info("Attendance report for %s saved to %s", attendance_date, path)
    return path, len(rows)


def provision_day(attendance_date: date) -> int:
    """Create a blank row for each active resident lacking one for attendance_date."""
    has_row = (
        db.session.query(DailyAttendance.id)
        .filter(
            DailyAttendance.resident_id == Resident.id,
            DailyAttendance.attendance_date == attendance_date,
        )
        .exists()
    )
    missing = [
        row[0]
        for row in db.session.query(Resident.id)
        .filter(Resident.is_active.is_(True), ~has_row)
        .order_by(Resident.id)
    ]
    try:
        created = insert_ignoring_conflicts(DailyAttendance, [
            {
                "resident_id": resident_id,
                "attendance_date": attendance_date,
                "has_signed_in": False,
                "sign_in_time": None,
            }
            for resident_id in missing
        ])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info("Provisioned %s attendance records for %s", created, attendance_date)
    return created


def roll_over(*, now: datetime | None = None, reports_dir: str | None = None) -> RolloverSummary:
    """Archive yesterday's attendance, then provision today's rows."""
    now = now or local_now(current_app.config.get("LOCAL_TIMEZONE"))
    today = now.date()
    yesterday = today - timedelta(days=1)
    current_app.logger.info("Attendance rollover started (archive %s, provision %s)", yesterday, today)

    report_path, archived = None, 0
    try:
        report_path, archived = archive_day(yesterday, reports_dir=reports_dir)
    except ReportDirectoryMissing as e:
        current_app.logger.critical(
            "Report directory does not exist, skipping archive for %s. Please ensure the folder exists at: %s",
            yesterday, e.path,
        )
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to archive attendance for %s", yesterday)

    provisioned = provision_day(today)

    current_app.logger.info("Attendance rollover complete")
    return RolloverSummary(
        archive_date=yesterday,
        provision_date=today,
        report_path=report_path,
        archived=archived,
        provisioned=provisioned,
    )
