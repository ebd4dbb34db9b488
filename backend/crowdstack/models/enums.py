import enum


class Role(str, enum.Enum):
    SUPERADMIN = "superadmin"
    EVENT_ORGANIZER = "event_organizer"
    VENUE_ADMIN = "venue_admin"
    DJ = "dj"
    PROMOTER = "promoter"
    DOOR_STAFF = "door_staff"
    ATTENDEE = "attendee"


class VenueApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NOT_REQUIRED = "not_required"
