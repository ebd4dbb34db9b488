from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crowdstack.core.db import Base


class Venue(Base):
    __tablename__ = "venues"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))

    # events booked here skip the pending approval step
    auto_approve_events: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    members = relationship("VenueUser", back_populates="venue", cascade="all, delete-orphan")


class VenueUser(Base):
    __tablename__ = "venue_users"
    __table_args__ = (
        UniqueConstraint("venue_id", "user_id", name="uq_venue_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    venue_id: Mapped[int] = mapped_column(ForeignKey("venues.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    role: Mapped[str] = mapped_column(String(16), nullable=False, default="staff")  # admin/staff
    permissions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    assigned_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    venue = relationship("Venue", back_populates="members")
    user = relationship("User", foreign_keys=[user_id])
