from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crowdstack.core.db import Base


class Promoter(Base):
    """Referral identity, optionally linked 1:1 to a user."""

    __tablename__ = "promoters"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class EventPromoter(Base):
    """Promoter contract for a single event."""

    __tablename__ = "event_promoters"
    __table_args__ = (
        UniqueConstraint("event_id", "promoter_id", name="uq_event_promoters_event_promoter"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), index=True)
    promoter_id: Mapped[int] = mapped_column(ForeignKey("promoters.id", ondelete="CASCADE"), index=True)

    per_head_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)
    per_head_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    per_head_max: Mapped[int | None] = mapped_column(Integer, nullable=True)

    fixed_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)
    minimum_guests: Mapped[int | None] = mapped_column(Integer, nullable=True)
    below_minimum_percent: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # legacy single bonus, ignored when bonus_tiers is non-empty
    bonus_threshold: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bonus_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bonus_tiers: Mapped[list | None] = mapped_column(JSON, nullable=True)

    manual_adjustment_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    manual_adjustment_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    assigned_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    promoter = relationship("Promoter")
