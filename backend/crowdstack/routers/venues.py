from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context
from crowdstack.auth.guards import require_any_role, require_venue_permission
from crowdstack.core.db import get_db
from crowdstack.core.roles_registry import CREATOR_ROLES
from crowdstack.models import Event, Venue, VenueApprovalStatus
from crowdstack.services import teams
from crowdstack.services.access import resolve
from crowdstack.services.events import decide_venue_approval, event_out
from crowdstack.services.tenants import create_venue

router = APIRouter(prefix="/venues", tags=["venues"])


# ---------- Schemas ----------

class VenueCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    auto_approve_events: bool = False
    admin_emails: Optional[List[str]] = None


class VenueUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    auto_approve_events: bool | None = None


class TeamMemberAddIn(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    permissions: dict[str, bool] | None = None


class TeamMemberUpdateIn(BaseModel):
    permissions: dict[str, bool]


class ApprovalDecisionIn(BaseModel):
    action: Literal["approve", "reject"]
    rejection_reason: str | None = Field(default=None, max_length=500)


# ---------- Helpers ----------

def _get_venue_or_404(db: Session, venue_id: int) -> Venue:
    venue = db.get(Venue, venue_id)
    if venue is None:
        raise HTTPException(404, "Venue not found")
    return venue


def _venue_out(venue: Venue) -> dict:
    return {
        "id": venue.id,
        "name": venue.name,
        "auto_approve_events": bool(venue.auto_approve_events),
        "created_by": venue.created_by,
        "created_at": venue.created_at.isoformat() if venue.created_at else None,
    }


# ---------- Routes ----------

@router.post("")
def create_venue_route(
    payload: VenueCreateIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_any_role(*CREATOR_ROLES["venue"])),
):
    venue = create_venue(
        db,
        name=payload.name,
        created_by=ctx.user_id,
        auto_approve_events=payload.auto_approve_events,
        admin_emails=payload.admin_emails,
    )
    return _venue_out(venue)


@router.get("/{venue_id}")
def get_venue(
    venue_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    venue = _get_venue_or_404(db, venue_id)
    access = resolve(db, ctx, "venue", venue_id)
    if not access.has_access:
        raise HTTPException(403, "Forbidden")
    return {**_venue_out(venue), "access": access.as_dict()}


@router.patch("/{venue_id}")
def update_venue(
    venue_id: int,
    payload: VenueUpdateIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    venue = _get_venue_or_404(db, venue_id)
    require_venue_permission(db, ctx, venue_id=venue_id, capability="edit_venue")

    if payload.name is not None:
        venue.name = payload.name.strip()
    if payload.auto_approve_events is not None:
        venue.auto_approve_events = bool(payload.auto_approve_events)
    db.commit()
    return _venue_out(venue)


@router.get("/{venue_id}/events")
def list_venue_events(
    venue_id: int,
    approval_status: VenueApprovalStatus | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_venue_or_404(db, venue_id)
    if not resolve(db, ctx, "venue", venue_id).has_access:
        raise HTTPException(403, "Forbidden")

    stmt = select(Event).where(Event.venue_id == venue_id).order_by(Event.start_time.desc(), Event.id.desc())
    if approval_status is not None:
        stmt = stmt.where(Event.venue_approval_status == approval_status.value)
    return [event_out(e) for e in db.scalars(stmt).all()]


@router.post("/{venue_id}/events/{event_id}/approval")
def decide_event_approval(
    venue_id: int,
    event_id: int,
    payload: ApprovalDecisionIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_venue_or_404(db, venue_id)
    event = db.get(Event, event_id)
    if event is None or event.venue_id != venue_id:
        raise HTTPException(404, "Event not found")
    require_venue_permission(db, ctx, venue_id=venue_id, capability="approve_events")

    event = decide_venue_approval(
        db,
        event,
        approve=payload.action == "approve",
        decided_by=ctx.user_id,
        rejection_reason=payload.rejection_reason,
    )
    return event_out(event)


@router.get("/{venue_id}/team")
def list_team(
    venue_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_venue_or_404(db, venue_id)
    require_venue_permission(db, ctx, venue_id=venue_id, capability="manage_users")
    return {"venue_id": venue_id, **teams.list_members(db, "venue", venue_id)}


@router.post("/{venue_id}/team")
def add_team_member(
    venue_id: int,
    payload: TeamMemberAddIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_venue_or_404(db, venue_id)
    require_venue_permission(db, ctx, venue_id=venue_id, capability="manage_users")
    return teams.add_member(
        db,
        "venue",
        venue_id,
        email=payload.email,
        permissions=payload.permissions,
        assigned_by=ctx.user_id,
    )


@router.patch("/{venue_id}/team/{member_user_id}")
def update_team_member(
    venue_id: int,
    member_user_id: int,
    payload: TeamMemberUpdateIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_venue_or_404(db, venue_id)
    require_venue_permission(db, ctx, venue_id=venue_id, capability="manage_users")
    return teams.update_member_permissions(db, "venue", venue_id, member_user_id, payload.permissions)


@router.delete("/{venue_id}/team/{member_user_id}")
def remove_team_member(
    venue_id: int,
    member_user_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_venue_or_404(db, venue_id)
    require_venue_permission(db, ctx, venue_id=venue_id, capability="manage_users")
    teams.remove_member(db, "venue", venue_id, member_user_id)
    return {"ok": True}
