from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context, get_current_user
from crowdstack.core.db import get_db
from crowdstack.models import Organizer, OrganizerUser, User, Venue, VenueUser

router = APIRouter(tags=["me"])


class ProfileUpdateIn(BaseModel):
    full_name: str | None = Field(default=None, max_length=128)


@router.get("/me")
def me(
    user: User = Depends(get_current_user),
    ctx: AuthContext = Depends(get_auth_context),
):
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "roles": sorted(ctx.roles),
        "is_superadmin": ctx.is_superadmin,
    }


@router.patch("/me/profile")
def update_profile(
    payload: ProfileUpdateIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if payload.full_name is not None:
        user.full_name = payload.full_name.strip() or None
    db.commit()
    return {"ok": True}


@router.get("/me/organizers")
def my_organizers(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Organizers the caller created or belongs to."""
    created = db.execute(
        select(Organizer.id, Organizer.name).where(Organizer.created_by == ctx.user_id)
    ).all()
    member = db.execute(
        select(Organizer.id, Organizer.name, OrganizerUser.role, OrganizerUser.permissions)
        .join(OrganizerUser, OrganizerUser.organizer_id == Organizer.id)
        .where(OrganizerUser.user_id == ctx.user_id)
    ).all()

    out = {r.id: {"id": r.id, "name": r.name, "role": "creator", "permissions": None} for r in created}
    for r in member:
        out.setdefault(r.id, {"id": r.id, "name": r.name, "role": r.role, "permissions": r.permissions})
    return sorted(out.values(), key=lambda x: x["id"])


@router.get("/me/venues")
def my_venues(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    created = db.execute(
        select(Venue.id, Venue.name).where(Venue.created_by == ctx.user_id)
    ).all()
    member = db.execute(
        select(Venue.id, Venue.name, VenueUser.role, VenueUser.permissions)
        .join(VenueUser, VenueUser.venue_id == Venue.id)
        .where(VenueUser.user_id == ctx.user_id)
    ).all()

    out = {r.id: {"id": r.id, "name": r.name, "role": "creator", "permissions": None} for r in created}
    for r in member:
        out.setdefault(r.id, {"id": r.id, "name": r.name, "role": r.role, "permissions": r.permissions})
    return sorted(out.values(), key=lambda x: x["id"])
