from __future__ import annotations

from ..extensions import db
from migdalor.time_utils import to_utc_z


class Person(db.Model):
    """
    Anyone known to the residence: residents, instructors, staff.

    Holds the display data (name, phone) that reports and rosters join in.
    """
    __tablename__ = "people"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }


class Resident(db.Model):
    """
    Resident profile layered on a Person (shares its primary key).

    Only active residents are provisioned a daily attendance row.
    """
    __tablename__ = "residents"

    id = db.Column(db.Integer, db.ForeignKey("people.id"), primary_key=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    branch_name = db.Column(db.String(100), nullable=True)
    date_of_arrival = db.Column(db.Date, nullable=True)

    person = db.relationship("Person", backref=db.backref("resident", uselist=False))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "is_active": self.is_active,
            "branch_name": self.branch_name,
            "date_of_arrival": self.date_of_arrival.isoformat() if self.date_of_arrival else None,
        }
