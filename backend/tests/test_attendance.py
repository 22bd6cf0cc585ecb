"""
Daily attendance rollover tests.

Covers provisioning (idempotent, active residents only) and the archived
xlsx report.
"""

import logging
import os
from datetime import date, datetime

from openpyxl import load_workbook

from migdalor.models import DailyAttendance
from migdalor.services import attendance_service
from migdalor.services.report_service import (
    REPORT_HEADERS,
    ReportDirectoryMissing,
    report_filename,
    summary_line,
    write_attendance_report,
)
from conftest import make_attendance, make_resident

import pytest


ROLLOVER_AT = datetime(2025, 1, 2, 4, 0)
TODAY = date(2025, 1, 2)
YESTERDAY = date(2025, 1, 1)


def test_provisions_one_row_per_active_resident(db_session, tmp_path):
    for i in range(10):
        make_resident(db_session, f"Resident{i}", "Test")

    summary = attendance_service.roll_over(now=ROLLOVER_AT, reports_dir=str(tmp_path))

    assert summary.provision_date == TODAY
    assert summary.provisioned == 10
    rows = db_session.query(DailyAttendance).filter_by(attendance_date=TODAY).all()
    assert len(rows) == 10
    assert all(not r.has_signed_in and r.sign_in_time is None for r in rows)


def test_second_run_adds_nothing(db_session, tmp_path):
    for i in range(10):
        make_resident(db_session, f"Resident{i}", "Test")

    attendance_service.roll_over(now=ROLLOVER_AT, reports_dir=str(tmp_path))
    summary = attendance_service.roll_over(now=ROLLOVER_AT, reports_dir=str(tmp_path))

    assert summary.provisioned == 0
    assert db_session.query(DailyAttendance).filter_by(attendance_date=TODAY).count() == 10


def test_existing_row_is_left_untouched(db_session):
    early = make_resident(db_session, "Early", "Bird")
    make_resident(db_session, "Late", "Riser")
    signed = make_attendance(db_session, early, TODAY, signed_in_at=datetime(2025, 1, 2, 3, 30))

    assert attendance_service.provision_day(TODAY) == 1

    db_session.refresh(signed)
    assert signed.has_signed_in is True
    assert db_session.query(DailyAttendance).filter_by(attendance_date=TODAY).count() == 2


def test_inactive_residents_are_not_provisioned(db_session, tmp_path):
    make_resident(db_session, "Active", "One")
    make_resident(db_session, "Moved", "Out", is_active=False)

    summary = attendance_service.roll_over(now=ROLLOVER_AT, reports_dir=str(tmp_path))

    assert summary.provisioned == 1


def test_archives_yesterday_to_dated_report(db_session, tmp_path):
    dana = make_resident(db_session, "Dana", "Amir", phone="050-1234567")
    yossi = make_resident(db_session, "Yossi", "Ben-David")
    make_attendance(db_session, dana, YESTERDAY, signed_in_at=datetime(2025, 1, 1, 7, 15))
    make_attendance(db_session, yossi, YESTERDAY)

    summary = attendance_service.roll_over(now=ROLLOVER_AT, reports_dir=str(tmp_path))

    expected = tmp_path / "DailyAttendance_Report_2025-01-01.xlsx"
    assert summary.report_path == str(expected)
    assert summary.archived == 2
    assert expected.exists()

    ws = load_workbook(expected).active
    assert tuple(c.value for c in ws[1]) == REPORT_HEADERS
    assert ws["A2"].value == "Dana Amir"
    assert ws["B2"].value == "050-1234567"
    assert ws["C2"].value == "Yes"
    assert ws["A3"].value == "Yossi Ben-David"
    assert ws["B3"].value == "N/A"
    assert ws["C3"].value == "No"
    assert ws["D3"].value == "N/A"
    assert ws["A5"].value == "1 of 2 residents signed in on 01-01-2025"
    assert ws["A5"].font.bold


def test_no_report_without_yesterday_rows(db_session, tmp_path):
    make_resident(db_session, "Only", "Today")

    summary = attendance_service.roll_over(now=ROLLOVER_AT, reports_dir=str(tmp_path))

    assert summary.report_path is None
    assert summary.archived == 0
    assert os.listdir(tmp_path) == []


def test_missing_report_directory_still_provisions(db_session, tmp_path, caplog):
    resident = make_resident(db_session, "Dana", "Amir")
    make_attendance(db_session, resident, YESTERDAY)
    missing = str(tmp_path / "does-not-exist")

    with caplog.at_level(logging.INFO):
        summary = attendance_service.roll_over(now=ROLLOVER_AT, reports_dir=missing)

    assert summary.report_path is None
    assert summary.provisioned == 1
    assert not os.path.exists(missing)
    assert any(r.levelno == logging.CRITICAL and missing in r.getMessage() for r in caplog.records)


def test_report_writer_refuses_missing_directory(tmp_path):
    with pytest.raises(ReportDirectoryMissing):
        write_attendance_report([], report_date=YESTERDAY, directory=str(tmp_path / "nope"), prefix="X")


def test_report_naming_and_summary_text():
    assert report_filename("DailyAttendance_Report", date(2025, 3, 9)) == "DailyAttendance_Report_2025-03-09.xlsx"
    assert summary_line(date(2025, 3, 9), []) == "0 of 0 residents signed in on 09-03-2025"
