from .enums import Role, VenueApprovalStatus
from .user import User, UserRole
from .organizer import Organizer, OrganizerUser
from .venue import Venue, VenueUser
from .team_invite import TeamInvite
from .capability import Capability
from .event import Event
from .attendee import Attendee
from .promoter import Promoter, EventPromoter
from .registration import Registration, Checkin
from .door_staff import EventDoorStaff
from .payout import PayoutRun, PayoutLine

__all__ = [
    "Role",
    "VenueApprovalStatus",
    "User",
    "UserRole",
    "Organizer",
    "OrganizerUser",
    "Venue",
    "VenueUser",
    "TeamInvite",
    "Capability",
    "Event",
    "Attendee",
    "Promoter",
    "EventPromoter",
    "Registration",
    "Checkin",
    "EventDoorStaff",
    "PayoutRun",
    "PayoutLine",
]
