from __future__ import annotations

from fastapi import Depends, HTTPException, status

from crowdstack.auth.deps import AuthContext, get_auth_context
from crowdstack.services.access import (
    has_event_permission,
    has_organizer_permission,
    has_venue_permission,
)


def require_superadmin(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not ctx.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - Superadmin role required",
        )
    return ctx


def has_any_role(ctx: AuthContext, roles: tuple[str, ...] | list[str]) -> bool:
    if ctx.is_superadmin:
        return True
    return any(ctx.has_role(r) for r in roles)


def require_any_role(*roles: str):
    """Dependency factory: caller must hold one of `roles` (superadmin always passes)."""

    def _dep(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not has_any_role(ctx, roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden - Requires one of: {', '.join(roles)}",
            )
        return ctx

    return _dep


# ---------- resource-level ----------

def _forbidden() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def require_event_permission(db, ctx: AuthContext, *, event_id: int, capability: str) -> None:
    if not has_event_permission(db, ctx, event_id, capability):
        raise _forbidden()


def require_organizer_permission(db, ctx: AuthContext, *, organizer_id: int, capability: str) -> None:
    if not has_organizer_permission(db, ctx, organizer_id, capability):
        raise _forbidden()


def require_venue_permission(db, ctx: AuthContext, *, venue_id: int, capability: str) -> None:
    if not has_venue_permission(db, ctx, venue_id, capability):
        raise _forbidden()
