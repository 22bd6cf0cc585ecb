from .people import Person, Resident
from .events import Event, EventInstance, EventParticipation
from .attendance import DailyAttendance
from .content import Listing, Notice, Picture

__all__ = [
    'Person', 'Resident',
    'Event', 'EventInstance', 'EventParticipation',
    'DailyAttendance',
    'Listing', 'Notice', 'Picture',
]
