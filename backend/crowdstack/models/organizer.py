from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crowdstack.core.db import Base


class Organizer(Base):
    __tablename__ = "organizers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))

    # primary owner
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    members = relationship("OrganizerUser", back_populates="organizer", cascade="all, delete-orphan")


class OrganizerUser(Base):
    __tablename__ = "organizer_users"
    __table_args__ = (
        UniqueConstraint("organizer_id", "user_id", name="uq_organizer_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    organizer_id: Mapped[int] = mapped_column(ForeignKey("organizers.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    role: Mapped[str] = mapped_column(String(16), nullable=False, default="staff")  # admin/staff
    permissions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    assigned_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    organizer = relationship("Organizer", back_populates="members")
    user = relationship("User", foreign_keys=[user_id])
