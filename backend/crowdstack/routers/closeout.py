from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.auth.deps import AuthContext, get_auth_context
from crowdstack.auth.guards import require_event_permission
from crowdstack.core.db import get_db
from crowdstack.models import PayoutLine, PayoutRun, Promoter
from crowdstack.routers.events import get_event_or_404
from crowdstack.services import closeout, notify

log = logging.getLogger("crowdstack.closeout")

router = APIRouter(tags=["closeout"])


class ManualAdjustmentIn(BaseModel):
    promoter_id: int = Field(..., gt=0)
    manual_adjustment_amount: int | None = None
    manual_adjustment_reason: str | None = Field(default=None, max_length=500)


class FinalizeIn(BaseModel):
    total_revenue: int | None = Field(default=None, ge=0)
    closeout_notes: str | None = Field(default=None, max_length=5000)


def _line_out(line: PayoutLine, promoter_name: str | None = None) -> dict:
    return {
        "id": line.id,
        "promoter_id": line.promoter_id,
        "promoter_name": promoter_name,
        "checkins_count": line.checkins_count,
        "commission_amount": line.commission_amount,
        "payment_status": line.payment_status,
        "paid_at": line.paid_at.isoformat() if line.paid_at else None,
        "paid_by": line.paid_by,
    }


@router.get("/events/{event_id}/closeout")
def get_closeout_summary(
    event_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="view_financials")
    return closeout.build_summary(db, event)


@router.patch("/events/{event_id}/closeout")
def update_manual_adjustment(
    event_id: int,
    payload: ManualAdjustmentIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="closeout_event")
    closeout.set_manual_adjustment(
        db,
        event,
        promoter_id=payload.promoter_id,
        amount=payload.manual_adjustment_amount,
        reason=payload.manual_adjustment_reason,
    )
    return closeout.build_summary(db, event)


@router.post("/events/{event_id}/closeout/finalize")
def finalize_closeout(
    event_id: int,
    payload: FinalizeIn,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    event = get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="closeout_event")

    run, lines = closeout.finalize_closeout(
        db,
        event,
        user_id=ctx.user_id,
        total_revenue=payload.total_revenue,
        closeout_notes=payload.closeout_notes,
    )

    promoters = {
        p.id: p
        for p in db.scalars(select(Promoter).where(Promoter.id.in_([ln.promoter_id for ln in lines]))).all()
    } if lines else {}

    breakdowns = (
        {p["promoter_id"]: p["breakdown_text"] for p in closeout.build_summary(db, event)["promoters"]}
        if lines
        else {}
    )

    # payout emails go out after commit; failures never undo the closeout
    for line in lines:
        p = promoters.get(line.promoter_id)
        if p is None or not p.email:
            continue
        notify.notify_payout_ready(
            email=p.email,
            promoter_name=p.name,
            event_name=event.name,
            amount=line.commission_amount,
            currency=event.currency or "IDR",
            breakdown=breakdowns.get(line.promoter_id),
        )

    return {
        "event_id": event.id,
        "status": event.status,
        "closed_at": event.closed_at.isoformat() if event.closed_at else None,
        "payout_run_id": run.id,
        "lines": [_line_out(ln, promoters[ln.promoter_id].name if ln.promoter_id in promoters else None) for ln in lines],
        "total_payout": sum(ln.commission_amount for ln in lines),
    }


@router.get("/events/{event_id}/payouts")
def get_event_payouts(
    event_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    get_event_or_404(db, event_id)
    require_event_permission(db, ctx, event_id=event_id, capability="view_financials")

    run = db.execute(select(PayoutRun).where(PayoutRun.event_id == event_id)).scalar_one_or_none()
    if run is None:
        return {"event_id": event_id, "payout_run_id": None, "lines": []}

    rows = db.execute(
        select(PayoutLine, Promoter.name)
        .join(Promoter, Promoter.id == PayoutLine.promoter_id)
        .where(PayoutLine.payout_run_id == run.id)
        .order_by(PayoutLine.id.asc())
    ).all()
    return {
        "event_id": event_id,
        "payout_run_id": run.id,
        "generated_at": run.generated_at.isoformat() if run.generated_at else None,
        "lines": [_line_out(line, name) for line, name in rows],
    }


@router.post("/payouts/lines/{line_id}/mark-paid")
def mark_payout_line_paid(
    line_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    line = db.get(PayoutLine, line_id)
    if line is None:
        raise HTTPException(404, "Payout line not found")
    run = db.get(PayoutRun, line.payout_run_id)
    require_event_permission(db, ctx, event_id=run.event_id, capability="view_financials")

    line = closeout.mark_line_paid(db, line, user_id=ctx.user_id)
    log.info("payout line %s marked paid by %s", line.id, ctx.user_id)
    return _line_out(line)
