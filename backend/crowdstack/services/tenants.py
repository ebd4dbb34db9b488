from __future__ import annotations

from sqlalchemy.orm import Session

from crowdstack.models import Organizer, Venue
from crowdstack.services.teams import add_member


# creates an organizer owned by the caller and adds any co-admins by email (invites unknown ones)
def create_organizer(db: Session, *, name: str, created_by: int, admin_emails: list[str] | None = None) -> Organizer:
    org = Organizer(name=name.strip(), created_by=created_by)
    db.add(org)
    db.commit()
    db.refresh(org)

    for email in dict.fromkeys(e.strip().lower() for e in (admin_emails or []) if e and e.strip()):
        add_member(db, "organizer", org.id, email=email, permissions={"full_admin": True}, assigned_by=created_by)

    return org


def create_venue(
    db: Session,
    *,
    name: str,
    created_by: int,
    auto_approve_events: bool = False,
    admin_emails: list[str] | None = None,
) -> Venue:
    venue = Venue(name=name.strip(), created_by=created_by, auto_approve_events=auto_approve_events)
    db.add(venue)
    db.commit()
    db.refresh(venue)

    for email in dict.fromkeys(e.strip().lower() for e in (admin_emails or []) if e and e.strip()):
        add_member(db, "venue", venue.id, email=email, permissions={"full_admin": True}, assigned_by=created_by)

    return venue
