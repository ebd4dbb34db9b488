from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from crowdstack.core.db import Base


class TeamInvite(Base):
    """Pending team membership for an email that has not signed up yet."""

    __tablename__ = "team_invites"
    __table_args__ = (
        UniqueConstraint("scope", "entity_id", "email", name="uq_team_invites_scope_entity_email"),
    )

    id = Column(Integer, primary_key=True)

    scope = Column(String(16), nullable=False)  # organizer/venue
    entity_id = Column(Integer, nullable=False, index=True)
    email = Column(String(320), nullable=False, index=True)  # lower

    permissions = Column(JSON, nullable=False, default=dict)

    is_active = Column(Boolean, nullable=False, default=True)

    invited_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    accepted_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    accepted_user = relationship("User", foreign_keys=[accepted_user_id])
