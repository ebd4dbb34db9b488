from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context
from crowdstack.auth.guards import require_event_permission
from crowdstack.core.db import get_db
from crowdstack.models import Event, EventPromoter, PayoutLine, PayoutRun, Promoter, User
from crowdstack.routers.events import get_event_or_404
from crowdstack.services.roles import assign_role

router = APIRouter(tags=["promoters"])


# ---------- Schemas ----------

class PromoterProfileIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)


class BonusTierIn(BaseModel):
    threshold: int = Field(..., gt=0)
    amount: int = Field(..., ge=0)
    repeatable: bool = False
    label: str | None = Field(default=None, max_length=100)


class PromoterContractIn(BaseModel):
    per_head_rate: int | None = Field(default=None, ge=0)
    per_head_min: int | None = Field(default=None, ge=0)
    per_head_max: int | None = Field(default=None, ge=0)
    fixed_fee: int | None = Field(default=None, ge=0)
    minimum_guests: int | None = Field(default=None, ge=0)
    below_minimum_percent: int | None = Field(default=None, ge=0, le=100)
    bonus_threshold: int | None = Field(default=None, gt=0)
    bonus_amount: int | None = Field(default=None, ge=0)
    bonus_tiers: list[BonusTierIn] | None = None


class AttachPromoterIn(PromoterContractIn):
    promoter_id: int = Field(..., gt=0)


CONTRACT_FIELDS = (
    "per_head_rate",
    "per_head_min",
    "per_head_max",
    "fixed_fee",
    "minimum_guests",
    "below_minimum_percent",
    "bonus_threshold",
    "bonus_amount",
)


# ---------- Helpers ----------

def _apply_contract(ep: EventPromoter, payload: PromoterContractIn, *, partial: bool) -> None:
    data = payload.model_dump(exclude_unset=partial)
    for f in CONTRACT_FIELDS:
        if f in data:
            setattr(ep, f, data[f])
    if "bonus_tiers" in data:
        ep.bonus_tiers = data["bonus_tiers"] or None


def _contract_out(ep: EventPromoter, promoter_name: str | None = None) -> dict:
    out = {f: getattr(ep, f) for f in CONTRACT_FIELDS}
    out.update(
        {
            "event_id": ep.event_id,
            "promoter_id": ep.promoter_id,
            "promoter_name": promoter_name,
            "bonus_tiers": ep.bonus_tiers or [],
            "manual_adjustment_amount": ep.manual_adjustment_amount,
            "manual_adjustment_reason": ep.manual_adjustment_reason,
        }
    )
    return out


# ---------- Promoter profile ----------

@router.post("/promoters/me")
def create_my_promoter_profile(
    payload: PromoterProfileIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    existing = db.execute(select(Promoter).where(Promoter.user_id == ctx.user_id)).scalar_one_or_none()
    if existing is not None:
        raise HTTPException(400, "Promoter profile already exists")

    user = db.get(User, ctx.user_id)
    promoter = Promoter(
        name=(payload.name or "").strip() or user.full_name or user.email,
        email=user.email,
        user_id=user.id,
        created_by=user.id,
    )
    db.add(promoter)
    assign_role(db, user_id=user.id, role="promoter", assigned_by=user.id)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(400, "Promoter profile already exists")
    db.refresh(promoter)
    return {"id": promoter.id, "name": promoter.name, "email": promoter.email, "user_id": promoter.user_id}


@router.get("/promoters/me/earnings")
def my_earnings(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    promoter = db.execute(select(Promoter).where(Promoter.user_id == ctx.user_id)).scalar_one_or_none()
    if promoter is None:
        raise HTTPException(404, "Promoter profile not found")

    rows = db.execute(
        select(PayoutLine, Event.id, Event.name, Event.currency)
        .join(PayoutRun, PayoutRun.id == PayoutLine.payout_run_id)
        .join(Event, Event.id == PayoutRun.event_id)
        .where(PayoutLine.promoter_id == promoter.id)
        .order_by(PayoutRun.generated_at.desc(), PayoutLine.id.desc())
    ).all()

    lines = [
        {
            "id": line.id,
            "event_id": event_id,
            "event_name": event_name,
            "currency": currency,
            "checkins_count": line.checkins_count,
            "commission_amount": line.commission_amount,
            "payment_status": line.payment_status,
            "paid_at": line.paid_at.isoformat() if line.paid_at else None,
        }
        for line, event_id, event_name, currency in rows
    ]
    return {
        "promoter_id": promoter.id,
        "lines": lines,
        "total_pending": sum(x["commission_amount"] for x in lines if x["payment_status"] == "pending_payment"),
        "total_paid": sum(x["commission_amount"] for x in lines if x["payment_status"] == "paid"),
    }


# ---------- Event promoters ----------

@router.get("/events/{event_id}/promoters")
def list_event_promoters(
    event_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="manage_promoters")

    rows = db.execute(
        select(EventPromoter, Promoter.name)
        .join(Promoter, Promoter.id == EventPromoter.promoter_id)
        .where(EventPromoter.event_id == event_id)
        .order_by(EventPromoter.id.asc())
    ).all()
    return {"event_id": event_id, "promoters": [_contract_out(ep, name) for ep, name in rows]}


@router.post("/events/{event_id}/promoters")
def attach_promoter(
    event_id: int,
    payload: AttachPromoterIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="manage_promoters")
    if event.is_locked:
        raise HTTPException(400, "Event is closed")

    promoter = db.get(Promoter, payload.promoter_id)
    if promoter is None:
        raise HTTPException(404, "Promoter not found")

    existing = db.execute(
        select(EventPromoter.id).where(EventPromoter.event_id == event_id, EventPromoter.promoter_id == promoter.id)
    ).first()
    if existing is not None:
        raise HTTPException(400, "Promoter is already attached to this event")

    ep = EventPromoter(event_id=event_id, promoter_id=promoter.id, assigned_by=ctx.user_id)
    _apply_contract(ep, payload, partial=False)
    db.add(ep)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(400, "Promoter is already attached to this event")
    db.refresh(ep)
    return _contract_out(ep, promoter.name)


@router.patch("/events/{event_id}/promoters/{promoter_id}")
def update_promoter_contract(
    event_id: int,
    promoter_id: int,
    payload: PromoterContractIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="manage_promoters")
    if event.is_locked:
        raise HTTPException(400, "Event is closed")

    ep = db.execute(
        select(EventPromoter).where(EventPromoter.event_id == event_id, EventPromoter.promoter_id == promoter_id)
    ).scalar_one_or_none()
    if ep is None:
        raise HTTPException(404, "Promoter is not attached to this event")

    _apply_contract(ep, payload, partial=True)
    db.commit()
    db.refresh(ep)
    return _contract_out(ep)


@router.delete("/events/{event_id}/promoters/{promoter_id}")
def detach_promoter(
    event_id: int,
    promoter_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="manage_promoters")
    if event.is_locked:
        raise HTTPException(400, "Event is closed")

    ep = db.execute(
        select(EventPromoter).where(EventPromoter.event_id == event_id, EventPromoter.promoter_id == promoter_id)
    ).scalar_one_or_none()
    if ep is None:
        raise HTTPException(404, "Promoter is not attached to this event")

    db.delete(ep)
    db.commit()
    return {"ok": True}
