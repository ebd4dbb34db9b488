from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context
from crowdstack.auth.guards import require_any_role, require_organizer_permission
from crowdstack.core.db import get_db
from crowdstack.core.roles_registry import CREATOR_ROLES
from crowdstack.models import Event, Organizer
from crowdstack.services import teams
from crowdstack.services.access import resolve
from crowdstack.services.tenants import create_organizer

router = APIRouter(prefix="/organizers", tags=["organizers"])


# ---------- Schemas ----------

class OrganizerCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    admin_emails: Optional[List[str]] = None


class OrganizerUpdateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class TeamMemberAddIn(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    permissions: dict[str, bool] | None = None


class TeamMemberUpdateIn(BaseModel):
    permissions: dict[str, bool]


# ---------- Helpers ----------

def _get_organizer_or_404(db: Session, organizer_id: int) -> Organizer:
    org = db.get(Organizer, organizer_id)
    if org is None:
        raise HTTPException(404, "Organizer not found")
    return org


def _organizer_out(org: Organizer) -> dict:
    return {
        "id": org.id,
        "name": org.name,
        "created_by": org.created_by,
        "created_at": org.created_at.isoformat() if org.created_at else None,
    }


# ---------- Routes ----------

@router.post("")
def create_organizer_route(
    payload: OrganizerCreateIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_any_role(*CREATOR_ROLES["organizer"])),
):
    org = create_organizer(db, name=payload.name, created_by=ctx.user_id, admin_emails=payload.admin_emails)
    return _organizer_out(org)


@router.get("/{organizer_id}")
def get_organizer(
    organizer_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    org = _get_organizer_or_404(db, organizer_id)
    access = resolve(db, ctx, "organizer", organizer_id)
    if not access.has_access:
        raise HTTPException(403, "Forbidden")
    return {**_organizer_out(org), "access": access.as_dict()}


@router.patch("/{organizer_id}")
def update_organizer(
    organizer_id: int,
    payload: OrganizerUpdateIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    org = _get_organizer_or_404(db, organizer_id)
    require_organizer_permission(db, ctx, organizer_id=organizer_id, capability="edit_organizer")

    org.name = payload.name.strip()
    db.commit()
    return _organizer_out(org)


@router.get("/{organizer_id}/events")
def list_organizer_events(
    organizer_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_organizer_or_404(db, organizer_id)
    if not resolve(db, ctx, "organizer", organizer_id).has_access:
        raise HTTPException(403, "Forbidden")

    rows = db.execute(
        select(Event.id, Event.name, Event.slug, Event.start_time, Event.status, Event.venue_approval_status)
        .where(Event.organizer_id == organizer_id)
        .order_by(Event.start_time.desc(), Event.id.desc())
    ).all()
    return [
        {
            "id": r.id,
            "name": r.name,
            "slug": r.slug,
            "start_time": r.start_time.isoformat() if r.start_time else None,
            "status": r.status,
            "venue_approval_status": r.venue_approval_status,
        }
        for r in rows
    ]


@router.get("/{organizer_id}/team")
def list_team(
    organizer_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_organizer_or_404(db, organizer_id)
    require_organizer_permission(db, ctx, organizer_id=organizer_id, capability="manage_users")
    return {"organizer_id": organizer_id, **teams.list_members(db, "organizer", organizer_id)}


@router.post("/{organizer_id}/team")
def add_team_member(
    organizer_id: int,
    payload: TeamMemberAddIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_organizer_or_404(db, organizer_id)
    require_organizer_permission(db, ctx, organizer_id=organizer_id, capability="manage_users")
    return teams.add_member(
        db,
        "organizer",
        organizer_id,
        email=payload.email,
        permissions=payload.permissions,
        assigned_by=ctx.user_id,
    )


@router.patch("/{organizer_id}/team/{member_user_id}")
def update_team_member(
    organizer_id: int,
    member_user_id: int,
    payload: TeamMemberUpdateIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_organizer_or_404(db, organizer_id)
    require_organizer_permission(db, ctx, organizer_id=organizer_id, capability="manage_users")
    return teams.update_member_permissions(db, "organizer", organizer_id, member_user_id, payload.permissions)


@router.delete("/{organizer_id}/team/{member_user_id}")
def remove_team_member(
    organizer_id: int,
    member_user_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _get_organizer_or_404(db, organizer_id)
    require_organizer_permission(db, ctx, organizer_id=organizer_id, capability="manage_users")
    teams.remove_member(db, "organizer", organizer_id, member_user_id)
    return {"ok": True}
