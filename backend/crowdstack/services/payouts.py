from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class BonusTier:
    threshold: int
    amount: int
    repeatable: bool = False  # True = every `threshold` guests, False = one-time milestone
    label: str | None = None


@dataclass(frozen=True)
class PromoterContract:
    per_head_rate: int | None = None
    per_head_min: int | None = None
    per_head_max: int | None = None
    fixed_fee: int | None = None
    minimum_guests: int | None = None
    below_minimum_percent: int | None = None  # 50 -> half the fixed fee when under minimum_guests
    bonus_threshold: int | None = None
    bonus_amount: int | None = None
    bonus_tiers: tuple[BonusTier, ...] = ()
    manual_adjustment_amount: int | None = None

    @classmethod
    def from_row(cls, row: Any) -> "PromoterContract":
        """Build from an EventPromoter row (or anything with the same attributes)."""
        tiers = tuple(
            BonusTier(
                threshold=int(t["threshold"]),
                amount=int(t["amount"]),
                repeatable=bool(t.get("repeatable", False)),
                label=t.get("label"),
            )
            for t in (row.bonus_tiers or [])
            if t and int(t.get("threshold") or 0) > 0
        )
        return cls(
            per_head_rate=row.per_head_rate,
            per_head_min=row.per_head_min,
            per_head_max=row.per_head_max,
            fixed_fee=row.fixed_fee,
            minimum_guests=row.minimum_guests,
            below_minimum_percent=row.below_minimum_percent,
            bonus_threshold=row.bonus_threshold,
            bonus_amount=row.bonus_amount,
            bonus_tiers=tiers,
            manual_adjustment_amount=row.manual_adjustment_amount,
        )


@dataclass
class PayoutBreakdown:
    per_head_amount: int = 0
    per_head_rate: int | None = None
    per_head_counted: int = 0
    fixed_fee_amount: int = 0
    fixed_fee_full: int | None = None
    fixed_fee_percent_applied: int | None = None
    bonus_amount: int = 0
    bonus_details: list[dict] = field(default_factory=list)
    calculated_payout: int = 0
    manual_adjustment: int = 0
    final_payout: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def calculate_promoter_payout(contract: PromoterContract, checkins: int) -> PayoutBreakdown:
    """Payout for one promoter given the number of effective (not undone) check-ins."""
    out = PayoutBreakdown(per_head_rate=contract.per_head_rate, fixed_fee_full=contract.fixed_fee)

    # per head
    if contract.per_head_rate is not None:
        counted = checkins
        if contract.per_head_min is not None and counted < contract.per_head_min:
            counted = 0
        elif contract.per_head_max is not None and counted > contract.per_head_max:
            counted = contract.per_head_max
        out.per_head_counted = counted
        out.per_head_amount = counted * contract.per_head_rate

    # fixed fee
    if contract.fixed_fee is not None:
        if contract.minimum_guests is not None and checkins < contract.minimum_guests:
            percent = 100 if contract.below_minimum_percent is None else contract.below_minimum_percent
        else:
            percent = 100
        out.fixed_fee_percent_applied = percent
        out.fixed_fee_amount = int(round(contract.fixed_fee * percent / 100))

    # bonuses: tiers take precedence over the legacy single bonus
    if contract.bonus_tiers:
        for tier in contract.bonus_tiers:
            if tier.repeatable:
                times = checkins // tier.threshold
                if times > 0:
                    out.bonus_amount += times * tier.amount
                    out.bonus_details.append(
                        {
                            "type": "repeatable",
                            "threshold": tier.threshold,
                            "amount": tier.amount,
                            "label": tier.label,
                            "times_earned": times,
                        }
                    )
            elif checkins >= tier.threshold:
                out.bonus_amount += tier.amount
                out.bonus_details.append(
                    {"type": "tier", "threshold": tier.threshold, "amount": tier.amount, "label": tier.label}
                )
    elif (
        contract.bonus_threshold is not None
        and contract.bonus_amount is not None
        and checkins >= contract.bonus_threshold
    ):
        out.bonus_amount += contract.bonus_amount
        out.bonus_details.append(
            {"type": "legacy", "threshold": contract.bonus_threshold, "amount": contract.bonus_amount}
        )

    out.calculated_payout = out.per_head_amount + out.fixed_fee_amount + out.bonus_amount
    out.manual_adjustment = contract.manual_adjustment_amount or 0
    out.final_payout = out.calculated_payout + out.manual_adjustment
    return out


def _money(amount: int, currency: str) -> str:
    return f"{currency} {amount:,}"


def format_payout_breakdown(b: PayoutBreakdown, currency: str) -> str:
    parts: list[str] = []

    if b.per_head_amount > 0:
        parts.append(
            f"{b.per_head_counted} check-ins x {_money(b.per_head_rate or 0, currency)}"
            f" = {_money(b.per_head_amount, currency)}"
        )

    if b.fixed_fee_amount > 0:
        if b.fixed_fee_percent_applied is not None and b.fixed_fee_percent_applied < 100:
            parts.append(
                f"Fixed fee: {_money(b.fixed_fee_full or 0, currency)} x {b.fixed_fee_percent_applied}%"
                f" = {_money(b.fixed_fee_amount, currency)}"
            )
        else:
            parts.append(f"Fixed fee: {_money(b.fixed_fee_amount, currency)}")

    for bonus in b.bonus_details:
        label = f" - {bonus['label']}" if bonus.get("label") else ""
        if bonus["type"] == "repeatable":
            parts.append(
                f"Bonus: {_money(bonus['amount'], currency)} x {bonus['times_earned']}"
                f" (every {bonus['threshold']} guests){label}"
            )
        else:
            parts.append(f"Bonus: {_money(bonus['amount'], currency)} ({bonus['threshold']}+ guests){label}")

    if b.manual_adjustment != 0:
        sign = "+" if b.manual_adjustment > 0 else "-"
        parts.append(f"Manual adjustment: {sign}{_money(abs(b.manual_adjustment), currency)}")

    return " + ".join(parts)
