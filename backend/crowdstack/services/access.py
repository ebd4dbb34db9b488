"""Resource-level access resolution.

Decides whether a caller may act on an organizer, a venue or an event. The
walk is superadmin -> event owner -> creator -> membership -> deny; the first
rule that grants wins. `decide` is a pure function over `AccessFacts`; the
`load_*_facts` helpers gather those facts from the database. Lookup failures
are logged and resolve to "no access".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext
from crowdstack.core.permissions_registry import FULL_ADMIN, ORGANIZER, VENUE, full_admin_permissions
from crowdstack.models import Event, Organizer, OrganizerUser, Venue, VenueUser

log = logging.getLogger("crowdstack.access")

SOURCE_SUPERADMIN = "superadmin"
SOURCE_OWNER = "owner"
SOURCE_ORGANIZER_CREATOR = "organizer_creator"
SOURCE_VENUE_CREATOR = "venue_creator"
SOURCE_MEMBERSHIP = "membership"
SOURCE_NONE = "none"


@dataclass(frozen=True)
class Membership:
    scope: str  # organizer/venue
    entity_id: int
    permissions: dict


@dataclass(frozen=True)
class AccessFacts:
    user_id: int
    is_superadmin: bool = False
    owner_user_id: int | None = None
    organizer_created_by: int | None = None
    venue_created_by: int | None = None
    # evaluated in order: organizer membership first, then venue
    memberships: tuple[Membership, ...] = ()


@dataclass(frozen=True)
class AccessResult:
    has_access: bool
    access_source: str
    is_superadmin: bool = False
    is_owner: bool = False
    permissions: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "has_access": self.has_access,
            "access_source": self.access_source,
            "is_superadmin": self.is_superadmin,
            "is_owner": self.is_owner,
            "permissions": dict(self.permissions),
        }


NO_ACCESS = AccessResult(has_access=False, access_source=SOURCE_NONE)


def bag_allows(permissions: dict | None, capability: str) -> bool:
    perms = permissions or {}
    if perms.get(FULL_ADMIN) is True:
        return True
    return perms.get(capability) is True


def decide(facts: AccessFacts, capability: str | None = None) -> AccessResult:
    """Walk the rules in order. With capability=None any relationship counts as access."""
    uid = facts.user_id

    if facts.is_superadmin:
        return AccessResult(True, SOURCE_SUPERADMIN, is_superadmin=True, permissions={FULL_ADMIN: True})

    if facts.owner_user_id is not None and facts.owner_user_id == uid:
        return AccessResult(True, SOURCE_OWNER, is_owner=True, permissions={FULL_ADMIN: True})

    if facts.organizer_created_by is not None and facts.organizer_created_by == uid:
        return AccessResult(True, SOURCE_ORGANIZER_CREATOR, permissions=full_admin_permissions(ORGANIZER))

    if facts.venue_created_by is not None and facts.venue_created_by == uid:
        return AccessResult(True, SOURCE_VENUE_CREATOR, permissions=full_admin_permissions(VENUE))

    for m in facts.memberships:
        if capability is None or bag_allows(m.permissions, capability):
            return AccessResult(True, SOURCE_MEMBERSHIP, permissions=dict(m.permissions or {}))

    return NO_ACCESS


# ---------- fact loaders ----------

def _organizer_membership(db: Session, organizer_id: int, user_id: int) -> Membership | None:
    row = db.execute(
        select(OrganizerUser.permissions).where(
            OrganizerUser.organizer_id == organizer_id,
            OrganizerUser.user_id == user_id,
        )
    ).first()
    if row is None:
        return None
    return Membership(ORGANIZER, organizer_id, row.permissions or {})


def _venue_membership(db: Session, venue_id: int, user_id: int) -> Membership | None:
    row = db.execute(
        select(VenueUser.permissions).where(
            VenueUser.venue_id == venue_id,
            VenueUser.user_id == user_id,
        )
    ).first()
    if row is None:
        return None
    return Membership(VENUE, venue_id, row.permissions or {})


def load_organizer_facts(db: Session, ctx: AuthContext, organizer_id: int) -> AccessFacts | None:
    created_by = db.scalar(select(Organizer.created_by).where(Organizer.id == organizer_id))
    if created_by is None:
        return None
    m = _organizer_membership(db, organizer_id, ctx.user_id)
    return AccessFacts(
        user_id=ctx.user_id,
        is_superadmin=ctx.is_superadmin,
        organizer_created_by=created_by,
        memberships=(m,) if m else (),
    )


def load_venue_facts(db: Session, ctx: AuthContext, venue_id: int) -> AccessFacts | None:
    created_by = db.scalar(select(Venue.created_by).where(Venue.id == venue_id))
    if created_by is None:
        return None
    m = _venue_membership(db, venue_id, ctx.user_id)
    return AccessFacts(
        user_id=ctx.user_id,
        is_superadmin=ctx.is_superadmin,
        venue_created_by=created_by,
        memberships=(m,) if m else (),
    )


def load_event_facts(db: Session, ctx: AuthContext, event_id: int) -> AccessFacts | None:
    ev = db.execute(
        select(Event.owner_user_id, Event.organizer_id, Event.venue_id).where(Event.id == event_id)
    ).first()
    if ev is None:
        return None

    organizer_created_by = db.scalar(select(Organizer.created_by).where(Organizer.id == ev.organizer_id))
    memberships: list[Membership] = []
    m = _organizer_membership(db, ev.organizer_id, ctx.user_id)
    if m:
        memberships.append(m)

    venue_created_by = None
    # events without a venue skip the venue path entirely
    if ev.venue_id is not None:
        venue_created_by = db.scalar(select(Venue.created_by).where(Venue.id == ev.venue_id))
        vm = _venue_membership(db, ev.venue_id, ctx.user_id)
        if vm:
            memberships.append(vm)

    return AccessFacts(
        user_id=ctx.user_id,
        is_superadmin=ctx.is_superadmin,
        owner_user_id=ev.owner_user_id,
        organizer_created_by=organizer_created_by,
        venue_created_by=venue_created_by,
        memberships=tuple(memberships),
    )


_LOADERS = {
    "organizer": load_organizer_facts,
    "venue": load_venue_facts,
    "event": load_event_facts,
}


def resolve(
    db: Session,
    ctx: AuthContext,
    resource: str,
    resource_id: int,
    capability: str | None = None,
) -> AccessResult:
    """Resolve access to organizer/venue/event `resource_id`. Never raises on DB errors."""
    if ctx.is_superadmin:
        return decide(AccessFacts(user_id=ctx.user_id, is_superadmin=True), capability)

    loader = _LOADERS[resource]
    try:
        facts = loader(db, ctx, resource_id)
    except SQLAlchemyError:
        log.exception("access lookup failed resource=%s id=%s user=%s", resource, resource_id, ctx.user_id)
        return NO_ACCESS

    if facts is None:
        return NO_ACCESS

    result = decide(facts, capability)
    if not result.has_access:
        log.info(
            "access denied resource=%s id=%s user=%s capability=%s",
            resource,
            resource_id,
            ctx.user_id,
            capability,
        )
    return result


def get_event_access(db: Session, ctx: AuthContext, event_id: int) -> AccessResult:
    return resolve(db, ctx, "event", event_id)


def has_event_permission(db: Session, ctx: AuthContext, event_id: int, capability: str) -> bool:
    return resolve(db, ctx, "event", event_id, capability).has_access


def has_organizer_permission(db: Session, ctx: AuthContext, organizer_id: int, capability: str) -> bool:
    return resolve(db, ctx, "organizer", organizer_id, capability).has_access


def has_venue_permission(db: Session, ctx: AuthContext, venue_id: int, capability: str) -> bool:
    return resolve(db, ctx, "venue", venue_id, capability).has_access


def is_event_owner(db: Session, ctx: AuthContext, event_id: int) -> bool:
    access = get_event_access(db, ctx, event_id)
    return access.is_owner or access.is_superadmin
