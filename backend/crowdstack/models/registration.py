from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crowdstack.core.db import Base


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("attendee_id", "event_id", name="uq_registrations_attendee_event"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    attendee_id: Mapped[int] = mapped_column(ForeignKey("attendees.id", ondelete="CASCADE"), index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), index=True)
    referral_promoter_id: Mapped[int | None] = mapped_column(
        ForeignKey("promoters.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    attendee = relationship("Attendee")
    event = relationship("Event")
    checkin = relationship("Checkin", back_populates="registration", uselist=False)


class Checkin(Base):
    """Attendance fact. undo_at IS NULL means the guest is currently checked in."""

    __tablename__ = "checkins"

    id: Mapped[int] = mapped_column(primary_key=True)
    registration_id: Mapped[int] = mapped_column(
        ForeignKey("registrations.id", ondelete="CASCADE"), unique=True, index=True
    )

    checked_in_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    checked_in_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    undo_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    undo_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    registration = relationship("Registration", back_populates="checkin")
