from __future__ import annotations

from ..extensions import db
from migdalor.time_utils import to_utc_z


class DailyAttendance(db.Model):
    """
    Daily "good morning" check for a resident.

    LIFECYCLE:
    - Provisioned once per resident per local day by the rollover task
      (has_signed_in=False, sign_in_time=NULL)
    - Updated by the sign-in endpoint during the day
    - Archived into the daily report the following morning; read-only after
    """
    __tablename__ = "daily_attendance"
    __table_args__ = (
        db.UniqueConstraint("resident_id", "attendance_date", name="uq_daily_attendance_resident_date"),
        db.Index("ix_daily_attendance_date", "attendance_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    resident_id = db.Column(db.Integer, db.ForeignKey("residents.id"), nullable=False, index=True)
    attendance_date = db.Column(db.Date, nullable=False)
    has_signed_in = db.Column(db.Boolean, nullable=False, default=False)
    sign_in_time = db.Column(db.DateTime(timezone=True), nullable=True)

    resident = db.relationship("Resident", backref=db.backref("daily_attendance", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "resident_id": self.resident_id,
            "attendance_date": self.attendance_date.isoformat(),
            "has_signed_in": self.has_signed_in,
            "sign_in_time": to_utc_z(self.sign_in_time),
        }
