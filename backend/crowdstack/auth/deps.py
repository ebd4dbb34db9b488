from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import Cookie, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.auth.jwt_tokens import JwtConfig, decode_access_token
from crowdstack.core.config import settings
from crowdstack.core.db import get_db
from crowdstack.models import User, UserRole


@dataclass(frozen=True)
class AuthContext:
    """Who is calling. Built once per request and passed to handlers and the access resolver."""

    user_id: int
    roles: frozenset[str] = field(default_factory=frozenset)
    email: str | None = None

    @property
    def is_superadmin(self) -> bool:
        return "superadmin" in self.roles

    def has_role(self, role: str) -> bool:
        return role in self.roles


def get_jwt_config() -> JwtConfig:
    return JwtConfig(
        secret=settings.JWT_SECRET,
        issuer=settings.JWT_ISS,
        audience=settings.JWT_AUD,
        ttl_seconds=settings.ACCESS_TOKEN_TTL_SECONDS,
    )


def load_roles(db: Session, user_id: int) -> frozenset[str]:
    rows = db.scalars(select(UserRole.role).where(UserRole.user_id == user_id)).all()
    return frozenset(rows)


def _user_id_from_cookies(access_token: str | None, localhost_user_id: str | None) -> int | None:
    if access_token:
        try:
            payload = decode_access_token(get_jwt_config(), access_token)
            return int(payload["sub"])
        except Exception:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if settings.DEV_AUTH_FALLBACK and localhost_user_id:
        if not localhost_user_id.isdigit():
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        return int(localhost_user_id)

    return None


def get_auth_context(
    db: Session = Depends(get_db),
    access_token: str | None = Cookie(default=None, alias="access_token"),
    localhost_user_id: str | None = Cookie(default=None, alias="localhost_user_id"),
) -> AuthContext:
    user_id = _user_id_from_cookies(access_token, localhost_user_id)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return AuthContext(user_id=user.id, roles=load_roles(db, user.id), email=user.email)


def get_optional_auth_context(
    db: Session = Depends(get_db),
    access_token: str | None = Cookie(default=None, alias="access_token"),
    localhost_user_id: str | None = Cookie(default=None, alias="localhost_user_id"),
) -> AuthContext | None:
    """Same as get_auth_context, but anonymous callers get None instead of 401."""
    try:
        return get_auth_context(db, access_token, localhost_user_id)
    except HTTPException:
        return None


def get_current_user(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> User:
    return db.get(User, ctx.user_id)
