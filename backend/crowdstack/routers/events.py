from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context, get_optional_auth_context
from crowdstack.auth.guards import require_event_permission, require_organizer_permission
from crowdstack.core.db import get_db
from crowdstack.models import Event, Organizer, Venue
from crowdstack.services.access import get_event_access, is_event_owner
from crowdstack.services.events import create_event, event_out, transfer_ownership, update_event

router = APIRouter(prefix="/events", tags=["events"])


# ---------- Schemas ----------

class EventCreateIn(BaseModel):
    organizer_id: int = Field(..., gt=0)
    venue_id: int | None = Field(default=None, gt=0)
    name: str = Field(..., min_length=1, max_length=200)
    slug: str | None = Field(default=None, max_length=180)
    start_time: datetime | None = None
    currency: str = Field("IDR", min_length=3, max_length=3)


class EventUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    start_time: datetime | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    status: Literal["draft", "published"] | None = None


class TransferOwnershipIn(BaseModel):
    new_owner_user_id: int = Field(..., gt=0)


# ---------- Helpers ----------

def get_event_or_404(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(404, "Event not found")
    return event


# ---------- Routes ----------

@router.post("")
def create_event_route(
    payload: EventCreateIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    organizer = db.get(Organizer, payload.organizer_id)
    if organizer is None:
        raise HTTPException(404, "Organizer not found")
    require_organizer_permission(db, ctx, organizer_id=organizer.id, capability="edit_events")

    venue = None
    if payload.venue_id is not None:
        venue = db.get(Venue, payload.venue_id)
        if venue is None:
            raise HTTPException(404, "Venue not found")

    event = create_event(
        db,
        organizer=organizer,
        venue=venue,
        name=payload.name,
        created_by=ctx.user_id,
        slug=payload.slug,
        start_time=payload.start_time,
        currency=payload.currency,
    )
    return event_out(event)


@router.get("/by-slug/{slug}")
def get_public_event(slug: str, db: Session = Depends(get_db)):
    event = db.execute(select(Event).where(Event.slug == slug)).scalar_one_or_none()
    if event is None or not event.is_public:
        raise HTTPException(404, "Event not found")
    return {
        "id": event.id,
        "name": event.name,
        "slug": event.slug,
        "start_time": event.start_time.isoformat() if event.start_time else None,
        "currency": event.currency,
    }


@router.get("/{event_id}")
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext | None = Depends(get_optional_auth_context),
):
    event = get_event_or_404(db, event_id)
    if event.is_public:
        return event_out(event)
    if ctx is None:
        raise HTTPException(401, "Not authenticated")
    if not get_event_access(db, ctx, event_id).has_access:
        raise HTTPException(403, "Forbidden")
    return event_out(event)


@router.patch("/{event_id}")
def update_event_route(
    event_id: int,
    payload: EventUpdateIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="edit_events")

    event = update_event(
        db,
        event,
        is_superadmin=ctx.is_superadmin,
        name=payload.name,
        start_time=payload.start_time,
        currency=payload.currency,
        status=payload.status,
    )
    return event_out(event)


@router.get("/{event_id}/access")
def my_event_access(
    event_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    get_event_or_404(db, event_id)
    return {"event_id": event_id, **get_event_access(db, ctx, event_id).as_dict()}


@router.post("/{event_id}/transfer-ownership")
def transfer_event_ownership(
    event_id: int,
    payload: TransferOwnershipIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    if not is_event_owner(db, ctx, event_id):
        raise HTTPException(403, "Only the event owner can transfer ownership")

    event = transfer_ownership(db, event, new_owner_id=payload.new_owner_user_id)
    return event_out(event)
