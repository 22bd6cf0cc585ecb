"""
Pytest fixtures for migdalor backend tests.

Provides an in-memory database, a test client, and small factories for
residents, events and content.
"""

from datetime import date, datetime

import pytest
from migdalor import create_app
from migdalor.extensions import db
from migdalor.models import (
    DailyAttendance,
    Listing,
    Notice,
    Person,
    Picture,
    Resident,
)


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REPORTS_DIR': str(tmp_path_factory.mktemp('reports')),
        'UPLOADS_DIR': str(tmp_path_factory.mktemp('uploads')),
        'SCHEDULER_ENABLED': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_resident(session, first_name: str, last_name: str, *, phone: str | None = None, is_active: bool = True) -> Resident:
    """Helper to create a Person with a Resident profile."""
    person = Person(first_name=first_name, last_name=last_name, phone_number=phone)
    session.add(person)
    session.flush()
    resident = Resident(id=person.id, is_active=is_active, branch_name="Main")
    session.add(resident)
    session.commit()
    return resident


def make_attendance(session, resident: Resident, day: date, *, signed_in_at: datetime | None = None) -> DailyAttendance:
    record = DailyAttendance(
        resident_id=resident.id,
        attendance_date=day,
        has_signed_in=signed_in_at is not None,
        sign_in_time=signed_in_at,
    )
    session.add(record)
    session.commit()
    return record


def make_listing(session, title: str, created_at: datetime) -> Listing:
    listing = Listing(title=title, description="For sale", created_at=created_at)
    session.add(listing)
    session.commit()
    return listing


def make_notice(session, title: str, created_at: datetime) -> Notice:
    notice = Notice(title=title, message="Hello", category="General", created_at=created_at)
    session.add(notice)
    session.commit()
    return notice


def make_picture(session, file_name: str, *, listing: Listing | None = None, notice: Notice | None = None) -> Picture:
    picture = Picture(
        name=file_name,
        path=f"/Images/{file_name}",
        alt=file_name,
        listing_id=listing.id if listing else None,
        notice_id=notice.id if notice else None,
    )
    session.add(picture)
    session.commit()
    return picture
