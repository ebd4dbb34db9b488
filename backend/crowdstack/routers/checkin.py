from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context
from crowdstack.auth.guards import require_event_permission
from crowdstack.core.db import get_db
from crowdstack.models import EventDoorStaff, User
from crowdstack.routers.events import get_event_or_404
from crowdstack.services.checkin import can_check_in, check_in, undo_check_in
from crowdstack.services.roles import assign_role

router = APIRouter(prefix="/events", tags=["checkin"])


# ---------- Schemas ----------

class CheckinIn(BaseModel):
    qr_token: str | None = None
    registration_id: int | None = Field(default=None, gt=0)


class DoorStaffAssignIn(BaseModel):
    user_id: int | None = Field(default=None, gt=0)
    email: str | None = Field(default=None, max_length=320)


# ---------- Check-in ----------

@router.post("/{event_id}/checkin")
def checkin_guest(
    event_id: int,
    payload: CheckinIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    if not can_check_in(db, ctx, event_id):
        raise HTTPException(403, "Forbidden")
    return check_in(
        db,
        event,
        user_id=ctx.user_id,
        qr_token=payload.qr_token,
        registration_id=payload.registration_id,
    )


@router.post("/{event_id}/checkin/{registration_id}/undo")
def undo_checkin(
    event_id: int,
    registration_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    if not can_check_in(db, ctx, event_id):
        raise HTTPException(403, "Forbidden")
    return undo_check_in(db, event, registration_id=registration_id, user_id=ctx.user_id)


# ---------- Door staff ----------

@router.get("/{event_id}/door-staff")
def list_door_staff(
    event_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="manage_door_staff")

    rows = db.execute(
        select(EventDoorStaff, User.email, User.full_name)
        .join(User, User.id == EventDoorStaff.user_id)
        .where(EventDoorStaff.event_id == event_id)
        .order_by(EventDoorStaff.assigned_at.asc(), EventDoorStaff.id.asc())
    ).all()
    return {
        "event_id": event_id,
        "door_staff": [
            {
                "user_id": ds.user_id,
                "email": email,
                "full_name": full_name,
                "status": ds.status,
                "assigned_by": ds.assigned_by,
                "assigned_at": ds.assigned_at.isoformat() if ds.assigned_at else None,
            }
            for ds, email, full_name in rows
        ],
    }


@router.post("/{event_id}/door-staff")
def assign_door_staff(
    event_id: int,
    payload: DoorStaffAssignIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="manage_door_staff")

    if payload.user_id is not None:
        user = db.get(User, payload.user_id)
    elif payload.email:
        user = db.execute(select(User).where(User.email == payload.email.strip().lower())).scalar_one_or_none()
    else:
        raise HTTPException(400, "user_id or email is required")
    if user is None:
        raise HTTPException(404, "User not found")

    ds = db.execute(
        select(EventDoorStaff).where(EventDoorStaff.event_id == event_id, EventDoorStaff.user_id == user.id)
    ).scalar_one_or_none()
    if ds is None:
        ds = EventDoorStaff(event_id=event_id, user_id=user.id, status="active", assigned_by=ctx.user_id)
        db.add(ds)
    else:
        ds.status = "active"
        ds.assigned_by = ctx.user_id

    assign_role(db, user_id=user.id, role="door_staff", assigned_by=ctx.user_id)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "Door staff assignment changed concurrently, retry")

    return {"event_id": event_id, "user_id": user.id, "status": ds.status}


@router.delete("/{event_id}/door-staff/{user_id}")
def revoke_door_staff(
    event_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="manage_door_staff")

    ds = db.execute(
        select(EventDoorStaff).where(EventDoorStaff.event_id == event_id, EventDoorStaff.user_id == user_id)
    ).scalar_one_or_none()
    if ds is None:
        raise HTTPException(404, "Door staff not found")

    ds.status = "revoked"
    db.commit()
    return {"ok": True}
