from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from crowdstack.core.db import Base


class Capability(Base):
    __tablename__ = "capabilities"

    code: Mapped[str] = mapped_column(String(80), primary_key=True)
    scopes: Mapped[str] = mapped_column(String(80))  # "organizer,venue"
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
