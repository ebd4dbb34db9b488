from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from crowdstack.models import Event, Organizer, User, Venue
from crowdstack.services import notify

log = logging.getLogger("crowdstack.events")

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    s = _SLUG_STRIP.sub("-", (value or "").strip().lower()).strip("-")
    return s[:180] or "event"


def unique_slug(db: Session, name: str, requested: str | None = None) -> str:
    base = slugify(requested or name)
    slug = base
    while db.scalar(select(Event.id).where(Event.slug == slug)) is not None:
        slug = f"{base}-{secrets.token_hex(3)}"
    return slug


def initial_approval_status(venue: Venue | None) -> str:
    if venue is None:
        return "not_required"
    return "approved" if venue.auto_approve_events else "pending"


def create_event(
    db: Session,
    *,
    organizer: Organizer,
    venue: Venue | None,
    name: str,
    created_by: int,
    slug: str | None = None,
    start_time: datetime | None = None,
    currency: str = "IDR",
) -> Event:
    approval = initial_approval_status(venue)
    event = Event(
        organizer_id=organizer.id,
        venue_id=venue.id if venue else None,
        name=name.strip(),
        slug=unique_slug(db, name, slug),
        start_time=start_time,
        currency=(currency or "IDR").upper(),
        status="draft",
        venue_approval_status=approval,
        venue_approval_at=datetime.now(timezone.utc) if approval == "approved" else None,
        created_by=created_by,
        owner_user_id=created_by,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    log.info("event %s created organizer=%s venue=%s approval=%s", event.id, organizer.id, event.venue_id, approval)
    return event


def decide_venue_approval(
    db: Session,
    event: Event,
    *,
    approve: bool,
    decided_by: int,
    rejection_reason: str | None = None,
) -> Event:
    if event.venue_id is None:
        raise HTTPException(400, "Event has no venue")
    if event.is_locked:
        raise HTTPException(400, "Event is closed")

    reason = (rejection_reason or "").strip() or None
    res = db.execute(
        update(Event)
        .where(Event.id == event.id, Event.version == event.version)
        .values(
            venue_approval_status="approved" if approve else "rejected",
            venue_approval_at=datetime.now(timezone.utc),
            venue_approval_by=decided_by,
            venue_rejection_reason=None if approve else reason,
            version=event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        raise HTTPException(409, "Event was modified concurrently, reload and retry")
    db.commit()
    db.refresh(event)

    _notify_approval(db, event, approved=approve, rejection_reason=reason)
    return event


def _notify_approval(db: Session, event: Event, *, approved: bool, rejection_reason: str | None) -> None:
    venue = db.get(Venue, event.venue_id)
    organizer = db.get(Organizer, event.organizer_id)
    owner = db.get(User, organizer.created_by) if organizer else None
    if owner is None or venue is None:
        return
    notify.notify_event_approval(
        email=owner.email,
        event_name=event.name,
        venue_name=venue.name,
        approved=approved,
        rejection_reason=rejection_reason,
    )


def commit_event(db: Session, event: Event) -> None:
    """Commit pending changes to `event`; a stale version (closed or edited meanwhile) is a 409."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        log.warning("event %s changed concurrently, write rejected", event.id)
        raise HTTPException(409, "Event was modified concurrently, reload and retry")
    db.refresh(event)


def update_event(
    db: Session,
    event: Event,
    *,
    is_superadmin: bool,
    name: str | None = None,
    start_time: datetime | None = None,
    currency: str | None = None,
    status: str | None = None,
) -> Event:
    if event.is_locked and not is_superadmin:
        raise HTTPException(400, "Event is closed and locked")

    if name is not None:
        event.name = name.strip()
    if start_time is not None:
        event.start_time = start_time
    if currency is not None:
        event.currency = currency.upper()
    if status is not None:
        if event.status == "closed":
            raise HTTPException(400, "Event is closed")
        event.status = status

    commit_event(db, event)
    return event


def transfer_ownership(db: Session, event: Event, *, new_owner_id: int) -> Event:
    if db.get(User, new_owner_id) is None:
        raise HTTPException(404, "User not found")
    previous = event.owner_user_id
    event.owner_user_id = new_owner_id
    commit_event(db, event)
    log.info("event %s ownership transferred %s -> %s", event.id, previous, new_owner_id)
    return event


def event_out(event: Event) -> dict:
    return {
        "id": event.id,
        "organizer_id": event.organizer_id,
        "venue_id": event.venue_id,
        "name": event.name,
        "slug": event.slug,
        "start_time": event.start_time.isoformat() if event.start_time else None,
        "currency": event.currency,
        "status": event.status,
        "venue_approval_status": event.venue_approval_status,
        "venue_approval_at": event.venue_approval_at.isoformat() if event.venue_approval_at else None,
        "venue_rejection_reason": event.venue_rejection_reason,
        "owner_user_id": event.owner_user_id,
        "created_by": event.created_by,
        "closed_at": event.closed_at.isoformat() if event.closed_at else None,
        "locked": event.is_locked,
        "version": event.version,
    }
