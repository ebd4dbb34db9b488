from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context
from crowdstack.auth.guards import require_superadmin
from crowdstack.core.db import get_db
from crowdstack.models import Capability, Event, User, UserRole
from crowdstack.services.events import decide_venue_approval, event_out
from crowdstack.services.roles import assign_role, revoke_role

router = APIRouter(tags=["admin"])


class RoleAssignIn(BaseModel):
    role: str = Field(..., min_length=1, max_length=32)


class ApprovalDecisionIn(BaseModel):
    action: Literal["approve", "reject"]
    rejection_reason: str | None = Field(default=None, max_length=500)


@router.get("/admin/users")
def search_users(
    q: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_superadmin),
):
    stmt = select(User).order_by(User.id.desc()).limit(limit)
    if q and q.strip():
        like = f"%{q.strip()}%"
        stmt = stmt.where(or_(User.email.ilike(like), User.full_name.ilike(like)))
    users = db.scalars(stmt).all()

    roles: dict[int, list[str]] = {}
    if users:
        for uid, role in db.execute(
            select(UserRole.user_id, UserRole.role).where(UserRole.user_id.in_([u.id for u in users]))
        ).all():
            roles.setdefault(uid, []).append(role)

    return [
        {
            "id": u.id,
            "email": u.email,
            "full_name": u.full_name,
            "roles": sorted(roles.get(u.id, [])),
            "created_at": u.created_at.isoformat() if u.created_at else None,
        }
        for u in users
    ]


@router.post("/admin/users/{user_id}/roles")
def grant_role(
    user_id: int,
    payload: RoleAssignIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_superadmin),
):
    if db.get(User, user_id) is None:
        raise HTTPException(404, "User not found")
    try:
        created = assign_role(db, user_id=user_id, role=payload.role.strip(), assigned_by=ctx.user_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
    db.commit()
    return {"user_id": user_id, "role": payload.role.strip(), "created": created}


@router.delete("/admin/users/{user_id}/roles/{role}")
def remove_role(
    user_id: int,
    role: str,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_superadmin),
):
    if db.get(User, user_id) is None:
        raise HTTPException(404, "User not found")
    if user_id == ctx.user_id and role == "superadmin":
        raise HTTPException(400, "You cannot remove your own superadmin role")
    if not revoke_role(db, user_id=user_id, role=role):
        raise HTTPException(404, "Role not assigned")
    db.commit()
    return {"ok": True}


@router.post("/admin/events/{event_id}/approve")
def admin_event_approval(
    event_id: int,
    payload: ApprovalDecisionIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_superadmin),
):
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(404, "Event not found")
    event = decide_venue_approval(
        db,
        event,
        approve=payload.action == "approve",
        decided_by=ctx.user_id,
        rejection_reason=payload.rejection_reason,
    )
    return event_out(event)


@router.get("/capabilities")
def list_capabilities(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    rows = db.scalars(select(Capability).where(Capability.is_active.is_(True)).order_by(Capability.code.asc())).all()
    return [
        {
            "code": c.code,
            "scopes": [s for s in c.scopes.split(",") if s],
            "title": c.title,
            "description": c.description,
        }
        for c in rows
    ]
