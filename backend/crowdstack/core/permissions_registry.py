from dataclasses import dataclass

ORGANIZER = "organizer"
VENUE = "venue"

FULL_ADMIN = "full_admin"


@dataclass(frozen=True)
class CapabilityDef:
    code: str
    scopes: tuple[str, ...]
    title: str
    description: str | None = None


# Every capability a membership permission bag may carry.
# Add a capability here -> it is accepted in bags and shows up in the DB after sync.
CAPABILITIES: list[CapabilityDef] = [
    CapabilityDef(FULL_ADMIN, (ORGANIZER, VENUE), "Full admin", "Implies every other capability"),

    # Events
    CapabilityDef("edit_events", (ORGANIZER, VENUE), "Edit events", "Create and edit events"),
    CapabilityDef("approve_events", (VENUE,), "Approve events", "Approve or reject events booked at the venue"),
    CapabilityDef("view_settings", (ORGANIZER, VENUE), "View settings", "Open event and team settings"),

    # People
    CapabilityDef("manage_users", (ORGANIZER, VENUE), "Manage team", "Add, edit and remove team members"),
    CapabilityDef("manage_promoters", (ORGANIZER, VENUE), "Manage promoters", "Attach promoters and edit contracts"),
    CapabilityDef("manage_door_staff", (ORGANIZER, VENUE), "Manage door staff", "Assign and revoke door staff"),
    CapabilityDef("manage_guests", (ORGANIZER, VENUE), "Manage guests", "Check guests in and out"),

    # Money
    CapabilityDef("view_financials", (ORGANIZER, VENUE), "View financials", "See closeout and payout figures"),
    CapabilityDef("closeout_event", (ORGANIZER, VENUE), "Close out events", "Adjust and finalize payouts"),

    # Entity
    CapabilityDef("edit_organizer", (ORGANIZER,), "Edit organizer", "Edit organizer profile"),
    CapabilityDef("edit_venue", (VENUE,), "Edit venue", "Edit venue profile and approval settings"),
]

CAPABILITY_CODES: frozenset[str] = frozenset(c.code for c in CAPABILITIES)


def codes_for_scope(scope: str) -> list[str]:
    return [c.code for c in CAPABILITIES if scope in c.scopes]


def default_permissions(scope: str) -> dict[str, bool]:
    """Bag given to a new team member when none is supplied."""
    return {code: code == "view_settings" for code in codes_for_scope(scope)}


def full_admin_permissions(scope: str) -> dict[str, bool]:
    return {code: True for code in codes_for_scope(scope)}


def validate_permissions(scope: str, bag: dict) -> dict[str, bool]:
    """Return a normalized bag for `scope` or raise ValueError on unknown keys / non-bool values."""
    allowed = set(codes_for_scope(scope))
    unknown = sorted(set(bag) - allowed)
    if unknown:
        raise ValueError(f"Unknown {scope} permissions: {', '.join(unknown)}")
    out = {code: False for code in allowed}
    for k, v in bag.items():
        if not isinstance(v, bool):
            raise ValueError(f"Permission {k} must be a boolean")
        out[k] = v
    return out
