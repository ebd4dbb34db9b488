from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdstack.models import Checkin, Event, EventPromoter, PayoutLine, PayoutRun, Promoter, Registration
from crowdstack.services.payouts import PromoterContract, calculate_promoter_payout, format_payout_breakdown

log = logging.getLogger("crowdstack.closeout")


def count_checkins_by_promoter(db: Session, event_id: int) -> dict[int, int]:
    """Effective check-ins (undo_at IS NULL) per referral promoter."""
    rows = db.execute(
        select(Registration.referral_promoter_id, func.count(Checkin.id))
        .join(Checkin, Checkin.registration_id == Registration.id)
        .where(
            Registration.event_id == event_id,
            Registration.referral_promoter_id.is_not(None),
            Checkin.undo_at.is_(None),
        )
        .group_by(Registration.referral_promoter_id)
    ).all()
    return {int(pid): int(cnt) for pid, cnt in rows}


def build_summary(db: Session, event: Event) -> dict:
    contracts = db.execute(
        select(EventPromoter, Promoter.name)
        .join(Promoter, Promoter.id == EventPromoter.promoter_id)
        .where(EventPromoter.event_id == event.id)
        .order_by(EventPromoter.id.asc())
    ).all()

    counts = count_checkins_by_promoter(db, event.id)
    currency = event.currency or "IDR"

    promoters = []
    for ep, promoter_name in contracts:
        checkins = counts.get(ep.promoter_id, 0)
        breakdown = calculate_promoter_payout(PromoterContract.from_row(ep), checkins)
        promoters.append(
            {
                "promoter_id": ep.promoter_id,
                "promoter_name": promoter_name or "Unknown",
                "checkins_count": checkins,
                "calculated_payout": breakdown.calculated_payout,
                "manual_adjustment_amount": ep.manual_adjustment_amount,
                "manual_adjustment_reason": ep.manual_adjustment_reason,
                "final_payout": breakdown.final_payout,
                "breakdown": breakdown.as_dict(),
                "breakdown_text": format_payout_breakdown(breakdown, currency),
            }
        )

    return {
        "event_id": event.id,
        "event_name": event.name,
        "status": event.status,
        "promoters": promoters,
        "total_checkins": sum(counts.values()),
        "total_payout": sum(p["final_payout"] for p in promoters),
        "currency": currency,
    }


def set_manual_adjustment(
    db: Session,
    event: Event,
    *,
    promoter_id: int,
    amount: int | None,
    reason: str | None,
) -> EventPromoter:
    if event.is_locked:
        raise HTTPException(400, "Event is closed and locked. Cannot modify adjustments.")

    ep = db.execute(
        select(EventPromoter).where(
            EventPromoter.event_id == event.id,
            EventPromoter.promoter_id == promoter_id,
        )
    ).scalar_one_or_none()
    if ep is None:
        raise HTTPException(404, "Promoter is not attached to this event")

    ep.manual_adjustment_amount = amount
    ep.manual_adjustment_reason = (reason or "").strip() or None
    db.commit()
    db.refresh(ep)
    return ep


def finalize_closeout(
    db: Session,
    event: Event,
    *,
    user_id: int,
    total_revenue: int | None = None,
    closeout_notes: str | None = None,
) -> tuple[PayoutRun, list[PayoutLine]]:
    """Close the event and create its payout run in a single transaction.

    The event row is flipped with a compare-and-set on (status, version), so of two
    concurrent finalize requests exactly one creates payouts; the other gets 409.
    """
    if event.status == "closed":
        raise HTTPException(400, "Event is already closed")

    seen_version = event.version
    now = datetime.now(timezone.utc)

    try:
        res = db.execute(
            update(Event)
            .where(
                Event.id == event.id,
                Event.version == seen_version,
                Event.status != "closed",
            )
            .values(
                status="closed",
                closed_at=now,
                closed_by=user_id,
                closeout_notes=(closeout_notes or "").strip() or None,
                total_revenue=total_revenue,
                locked_at=now,
                version=seen_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            db.rollback()
            raise HTTPException(409, "Event was modified concurrently, reload and retry")

        run = PayoutRun(event_id=event.id, generated_by=user_id)
        db.add(run)
        db.flush()

        counts = count_checkins_by_promoter(db, event.id)
        contracts = db.scalars(
            select(EventPromoter).where(EventPromoter.event_id == event.id).order_by(EventPromoter.id.asc())
        ).all()

        lines: list[PayoutLine] = []
        for ep in contracts:
            checkins = counts.get(ep.promoter_id, 0)
            breakdown = calculate_promoter_payout(PromoterContract.from_row(ep), checkins)
            line = PayoutLine(
                payout_run_id=run.id,
                promoter_id=ep.promoter_id,
                checkins_count=checkins,
                commission_amount=breakdown.final_payout,
                payment_status="pending_payment",
            )
            db.add(line)
            lines.append(line)

        db.commit()
    except IntegrityError:
        # payout_runs.event_id is unique: another finalize got there first
        db.rollback()
        raise HTTPException(409, "Event closeout already finalized")

    db.refresh(event)
    db.refresh(run)
    for line in lines:
        db.refresh(line)

    if not lines:
        log.info("event %s closed with no promoters configured", event.id)
    else:
        log.info("event %s closed: payout_run=%s lines=%s", event.id, run.id, len(lines))

    return run, lines


def mark_line_paid(db: Session, line: PayoutLine, *, user_id: int) -> PayoutLine:
    res = db.execute(
        update(PayoutLine)
        .where(PayoutLine.id == line.id, PayoutLine.payment_status == "pending_payment")
        .values(payment_status="paid", paid_at=datetime.now(timezone.utc), paid_by=user_id)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        raise HTTPException(409, "Payout line is already paid")
    db.commit()
    db.refresh(line)
    return line
