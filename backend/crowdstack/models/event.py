from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crowdstack.core.db import Base


class Event(Base):
    """An event run by one organizer, optionally hosted at a venue."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True)

    organizer_id: Mapped[int] = mapped_column(ForeignKey("organizers.id"), index=True)
    venue_id: Mapped[int | None] = mapped_column(ForeignKey("venues.id"), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="IDR")

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")  # draft/published/closed

    venue_approval_status: Mapped[str] = mapped_column(String(16), nullable=False, default="not_required")
    venue_approval_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    venue_approval_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    venue_rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"))
    owner_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # closeout
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    closeout_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_revenue: Mapped[int | None] = mapped_column(Integer, nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # optimistic locking: ORM flushes update WHERE version = :seen and bump it,
    # Core compare-and-set updates bump it by hand
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    organizer = relationship("Organizer")
    venue = relationship("Venue")

    @property
    def is_locked(self) -> bool:
        return self.locked_at is not None

    @property
    def is_public(self) -> bool:
        return self.status == "published" and self.venue_approval_status in ("approved", "not_required")
