from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context, get_optional_auth_context
from crowdstack.core.db import get_db
from crowdstack.models import Attendee, Checkin, Event, Registration
from crowdstack.routers.events import get_event_or_404
from crowdstack.services.checkin import can_check_in
from crowdstack.services.registration import register_for_event

router = APIRouter(tags=["registrations"])


class RegisterIn(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=32)


@router.post("/events/by-slug/{slug}/register")
def register(
    slug: str,
    payload: RegisterIn,
    ref: str | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: AuthContext | None = Depends(get_optional_auth_context),
):
    event = db.execute(select(Event).where(Event.slug == slug)).scalar_one_or_none()
    if event is None:
        raise HTTPException(404, "Event not found")

    return register_for_event(
        db,
        event,
        ctx=ctx,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        ref=ref,
    )


@router.get("/events/{event_id}/registrations")
def list_registrations(
    event_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Guest list for the door: manage_guests or an active door staff assignment."""
    get_event_or_404(db, event_id)
    if not can_check_in(db, ctx, event_id):
        raise HTTPException(403, "Forbidden")

    rows = db.execute(
        select(Registration, Attendee, Checkin)
        .join(Attendee, Attendee.id == Registration.attendee_id)
        .outerjoin(Checkin, Checkin.registration_id == Registration.id)
        .where(Registration.event_id == event_id)
        .order_by(Registration.created_at.asc(), Registration.id.asc())
    ).all()

    return {
        "event_id": event_id,
        "registrations": [
            {
                "id": reg.id,
                "attendee": {"id": att.id, "name": att.name, "email": att.email, "phone": att.phone},
                "referral_promoter_id": reg.referral_promoter_id,
                "checked_in": chk is not None and chk.undo_at is None,
                "checked_in_at": chk.checked_in_at.isoformat() if chk and chk.undo_at is None else None,
            }
            for reg, att, chk in rows
        ],
    }
