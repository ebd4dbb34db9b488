from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crowdstack.core.db import Base


class PayoutRun(Base):
    __tablename__ = "payout_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    # one run per event; the unique key backs up the closeout compare-and-set
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), unique=True, index=True)

    generated_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    lines = relationship("PayoutLine", back_populates="run", cascade="all, delete-orphan")


class PayoutLine(Base):
    __tablename__ = "payout_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    payout_run_id: Mapped[int] = mapped_column(ForeignKey("payout_runs.id", ondelete="CASCADE"), index=True)
    promoter_id: Mapped[int] = mapped_column(ForeignKey("promoters.id"), index=True)

    checkins_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    commission_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    payment_status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending_payment")
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    run = relationship("PayoutRun", back_populates="lines")
    promoter = relationship("Promoter")
