from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.models import Role, UserRole

log = logging.getLogger("crowdstack.roles")

VALID_ROLES = {r.value for r in Role}


def assign_role(db: Session, *, user_id: int, role: str, assigned_by: int | None = None) -> bool:
    """Grant `role` to the user. Returns False if it was already granted. Does not commit."""
    if role not in VALID_ROLES:
        raise ValueError(f"Unknown role: {role}")

    existing = db.execute(
        select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
    ).scalar_one_or_none()
    if existing is not None:
        return False

    db.add(UserRole(user_id=user_id, role=role, assigned_by=assigned_by))
    log.info("role %s granted to user %s by %s", role, user_id, assigned_by)
    return True


def revoke_role(db: Session, *, user_id: int, role: str) -> bool:
    existing = db.execute(
        select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
    ).scalar_one_or_none()
    if existing is None:
        return False
    db.delete(existing)
    log.info("role %s revoked from user %s", role, user_id)
    return True
