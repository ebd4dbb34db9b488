from __future__ import annotations

import logging

from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext
from crowdstack.models import Attendee, Event, Promoter, Registration, User
from crowdstack.services.qr_pass import generate_qr_pass_token

log = logging.getLogger("crowdstack.registration")


def _clean(value: str | None) -> str | None:
    v = (value or "").strip()
    return v or None


def find_or_create_attendee(
    db: Session,
    *,
    ctx: AuthContext | None,
    name: str | None,
    email: str | None,
    phone: str | None,
) -> Attendee:
    """Session user first, then email, then phone. New attendees need a phone number."""
    email = (_clean(email) or "").lower() or None
    phone = _clean(phone)
    name = _clean(name)

    if ctx is not None:
        att = db.execute(select(Attendee).where(Attendee.user_id == ctx.user_id)).scalar_one_or_none()
        if att:
            return att

    conds = []
    if email:
        conds.append(Attendee.email == email)
    if phone:
        conds.append(Attendee.phone == phone)
    if conds:
        att = db.execute(select(Attendee).where(or_(*conds)).order_by(Attendee.id.asc())).scalars().first()
        if att:
            if ctx is not None and att.user_id is None:
                att.user_id = ctx.user_id
            return att

    if not phone:
        raise HTTPException(400, "phone is required for new attendees")

    if ctx is not None:
        user = db.get(User, ctx.user_id)
        email = email or (user.email if user else None)
        name = name or (user.full_name if user else None)

    att = Attendee(
        name=name or "Guest",
        email=email,
        phone=phone,
        user_id=ctx.user_id if ctx is not None else None,
    )
    db.add(att)
    db.flush()
    return att


def resolve_referral(db: Session, ref: str | None) -> int | None:
    raw = _clean(ref)
    if raw is None:
        return None
    if not raw.isdigit():
        log.warning("ignoring malformed referral ref=%r", raw)
        return None
    promoter_id = db.scalar(select(Promoter.id).where(Promoter.id == int(raw)))
    if promoter_id is None:
        log.warning("ignoring unknown referral promoter ref=%s", raw)
    return promoter_id


def register_for_event(
    db: Session,
    event: Event,
    *,
    ctx: AuthContext | None,
    name: str | None,
    email: str | None,
    phone: str | None,
    ref: str | None = None,
) -> dict:
    if not event.is_public:
        raise HTTPException(404, "Event not found")
    if event.is_locked:
        raise HTTPException(400, "Event is closed")

    attendee = find_or_create_attendee(db, ctx=ctx, name=name, email=email, phone=phone)

    reg = db.execute(
        select(Registration).where(
            Registration.attendee_id == attendee.id,
            Registration.event_id == event.id,
        )
    ).scalar_one_or_none()

    created = False
    if reg is None:
        reg = Registration(
            attendee_id=attendee.id,
            event_id=event.id,
            referral_promoter_id=resolve_referral(db, ref),
        )
        db.add(reg)
        try:
            db.commit()
            created = True
        except IntegrityError:
            # concurrent registration for the same attendee won
            db.rollback()
            reg = db.execute(
                select(Registration).where(
                    Registration.attendee_id == attendee.id,
                    Registration.event_id == event.id,
                )
            ).scalar_one()
    else:
        db.commit()

    db.refresh(reg)
    db.refresh(attendee)

    return {
        "created": created,
        "registration": {
            "id": reg.id,
            "event_id": reg.event_id,
            "referral_promoter_id": reg.referral_promoter_id,
            "created_at": reg.created_at.isoformat() if reg.created_at else None,
        },
        "attendee": {
            "id": attendee.id,
            "name": attendee.name,
            "email": attendee.email,
            "phone": attendee.phone,
        },
        "qr_pass_token": generate_qr_pass_token(reg.id, event.id, attendee.id),
    }
