from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext
from crowdstack.models import Attendee, Checkin, Event, EventDoorStaff, Registration
from crowdstack.services.access import has_event_permission
from crowdstack.services.qr_pass import QRPassError, verify_qr_pass_token

log = logging.getLogger("crowdstack.checkin")


def is_active_door_staff(db: Session, *, event_id: int, user_id: int) -> bool:
    row = db.execute(
        select(EventDoorStaff.id).where(
            EventDoorStaff.event_id == event_id,
            EventDoorStaff.user_id == user_id,
            EventDoorStaff.status == "active",
        )
    ).first()
    return row is not None


def can_check_in(db: Session, ctx: AuthContext, event_id: int) -> bool:
    if has_event_permission(db, ctx, event_id, "manage_guests"):
        return True
    return is_active_door_staff(db, event_id=event_id, user_id=ctx.user_id)


def _registration_from_input(db: Session, event: Event, *, qr_token: str | None, registration_id: int | None) -> Registration:
    if qr_token:
        try:
            qr = verify_qr_pass_token(qr_token)
        except QRPassError as e:
            raise HTTPException(400, f"Invalid QR pass: {e}")
        if qr.event_id != event.id:
            raise HTTPException(400, "QR pass is for a different event")
        registration_id = qr.registration_id

    if registration_id is None:
        raise HTTPException(400, "qr_token or registration_id is required")

    reg = db.get(Registration, registration_id)
    if reg is None:
        raise HTTPException(404, "Registration not found")
    if reg.event_id != event.id:
        raise HTTPException(400, "Registration is for a different event")
    return reg


def _checkin_out(reg: Registration, chk: Checkin, attendee: Attendee | None, *, duplicate: bool) -> dict:
    return {
        "duplicate": duplicate,
        "registration_id": reg.id,
        "checkin_id": chk.id,
        "checked_in_at": chk.checked_in_at.isoformat() if chk.checked_in_at else None,
        "attendee": {
            "id": attendee.id,
            "name": attendee.name,
        } if attendee else None,
    }


def check_in(
    db: Session,
    event: Event,
    *,
    user_id: int,
    qr_token: str | None = None,
    registration_id: int | None = None,
) -> dict:
    if event.is_locked:
        raise HTTPException(400, "Event is closed. Check-ins are locked.")

    reg = _registration_from_input(db, event, qr_token=qr_token, registration_id=registration_id)
    attendee = db.get(Attendee, reg.attendee_id)

    chk = db.execute(select(Checkin).where(Checkin.registration_id == reg.id)).scalar_one_or_none()
    if chk is not None and chk.undo_at is None:
        return _checkin_out(reg, chk, attendee, duplicate=True)

    now = datetime.now(timezone.utc)
    if chk is not None:
        # reinstate an undone check-in
        chk.undo_at = None
        chk.undo_by = None
        chk.checked_in_at = now
        chk.checked_in_by = user_id
    else:
        chk = Checkin(registration_id=reg.id, checked_in_by=user_id, checked_in_at=now)
        db.add(chk)

    try:
        db.commit()
    except IntegrityError:
        # another scanner inserted the row first
        db.rollback()
        chk = db.execute(select(Checkin).where(Checkin.registration_id == reg.id)).scalar_one()
        return _checkin_out(reg, chk, attendee, duplicate=True)

    db.refresh(chk)
    log.info("checked in registration=%s event=%s by=%s", reg.id, event.id, user_id)
    return _checkin_out(reg, chk, attendee, duplicate=False)


def undo_check_in(db: Session, event: Event, *, registration_id: int, user_id: int) -> dict:
    if event.is_locked:
        raise HTTPException(400, "Event is closed. Check-ins are locked.")

    reg = db.get(Registration, registration_id)
    if reg is None or reg.event_id != event.id:
        raise HTTPException(404, "Registration not found")

    chk = db.execute(select(Checkin).where(Checkin.registration_id == reg.id)).scalar_one_or_none()
    if chk is None or chk.undo_at is not None:
        raise HTTPException(400, "Guest is not checked in")

    chk.undo_at = datetime.now(timezone.utc)
    chk.undo_by = user_id
    db.commit()
    log.info("check-in undone registration=%s event=%s by=%s", reg.id, event.id, user_id)
    return {"registration_id": reg.id, "undo_at": chk.undo_at.isoformat()}
