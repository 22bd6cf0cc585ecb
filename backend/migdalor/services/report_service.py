# Overview: Service-layer operations for reporting; renders archived attendance reports to xlsx.

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo


REPORT_HEADERS = ("Full name", "Phone number", "Signed in", "Sign-in time")
UNKNOWN_RESIDENT = "Unknown resident"
NOT_AVAILABLE = "N/A"


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


class ReportDirectoryMissing(ReportError):
    """The pre-provisioned report directory does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Report directory does not exist: {path}")
        self.path = path


@dataclass(frozen=True)
class AttendanceReportRow:
    full_name: str
    phone_number: str
    has_signed_in: bool
    sign_in_time: str  # local HH:MM or N/A


def report_filename(prefix: str, report_date: date) -> str:
    return f"{prefix}_{report_date:%Y-%m-%d}.xlsx"


def summary_line(report_date: date, rows: Sequence[AttendanceReportRow]) -> str:
    signed = sum(1 for r in rows if r.has_signed_in)
    return f"{signed} of {len(rows)} residents signed in on {report_date:%d-%m-%Y}"


def write_attendance_report(
    rows: Sequence[AttendanceReportRow],
    *,
    report_date: date,
    directory: str,
    prefix: str,
    right_to_left: bool = False,
) -> str:
    """
    Render one day of attendance to <directory>/<prefix>_<yyyy-MM-dd>.xlsx.

    The directory must already exist; it is never created here. An existing
    file for the same date is overwritten. Returns the written path.
    """
    if not os.path.isdir(directory):
        raise ReportDirectoryMissing(directory)

    wb = Workbook()
    ws = wb.active
    ws.title = f"Attendance {report_date:%d-%m-%Y}"
    ws.sheet_view.rightToLeft = right_to_left

    ws.append(list(REPORT_HEADERS))
    for r in rows:
        ws.append([
            r.full_name,
            r.phone_number,
            "Yes" if r.has_signed_in else "No",
            r.sign_in_time,
        ])

    last_col = get_column_letter(len(REPORT_HEADERS))
    if rows:
        table = Table(displayName="AttendanceReport", ref=f"A1:{last_col}{len(rows) + 1}")
        table.tableStyleInfo = TableStyleInfo(name="TableStyleLight16", showRowStripes=True)
        ws.add_table(table)

    for idx, header in enumerate(REPORT_HEADERS, start=1):
        values = [header] + [str(ws.cell(row=i, column=idx).value or "") for i in range(2, len(rows) + 2)]
        ws.column_dimensions[get_column_letter(idx)].width = max(len(v) for v in values) + 2

    summary_row = len(rows) + 3
    cell = ws.cell(row=summary_row, column=1, value=summary_line(report_date, rows))
    cell.font = Font(bold=True)
    cell.alignment = Alignment(horizontal="center")
    ws.merge_cells(start_row=summary_row, start_column=1, end_row=summary_row, end_column=len(REPORT_HEADERS))

    path = os.path.join(directory, report_filename(prefix, report_date))
    wb.save(path)
    return path
