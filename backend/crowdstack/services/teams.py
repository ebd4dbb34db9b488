"""Organizer and venue team membership (organizer_users / venue_users)."""

from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from crowdstack.core.permissions_registry import (
    FULL_ADMIN,
    ORGANIZER,
    VENUE,
    default_permissions,
    validate_permissions,
)
from crowdstack.core.roles_registry import SCOPE_TO_ROLE
from crowdstack.models import OrganizerUser, TeamInvite, User, VenueUser
from crowdstack.services.roles import assign_role

MEMBER_MODELS = {
    ORGANIZER: (OrganizerUser, "organizer_id"),
    VENUE: (VenueUser, "venue_id"),
}


def member_model(scope: str):
    return MEMBER_MODELS[scope]


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def clean_permissions(scope: str, permissions: dict | None) -> dict[str, bool]:
    if permissions is None:
        return default_permissions(scope)
    try:
        return validate_permissions(scope, permissions)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def role_for(permissions: dict) -> str:
    return "admin" if permissions.get(FULL_ADMIN) else "staff"


def get_member(db: Session, scope: str, entity_id: int, user_id: int):
    model, fk = member_model(scope)
    return db.execute(
        select(model).where(getattr(model, fk) == entity_id, model.user_id == user_id)
    ).scalar_one_or_none()


def list_members(db: Session, scope: str, entity_id: int) -> dict:
    model, fk = member_model(scope)
    rows = db.execute(
        select(model, User.email, User.full_name)
        .join(User, User.id == model.user_id)
        .where(getattr(model, fk) == entity_id)
        .order_by(model.assigned_at.desc(), model.id.desc())
    ).all()

    invites = db.scalars(
        select(TeamInvite)
        .where(
            TeamInvite.scope == scope,
            TeamInvite.entity_id == entity_id,
            TeamInvite.is_active.is_(True),
            TeamInvite.accepted_user_id.is_(None),
        )
        .order_by(TeamInvite.created_at.desc())
    ).all()

    return {
        "members": [
            {
                "id": m.id,
                "user_id": m.user_id,
                "email": email,
                "full_name": full_name,
                "role": m.role,
                "permissions": m.permissions or default_permissions(scope),
                "assigned_by": m.assigned_by,
                "assigned_at": m.assigned_at.isoformat() if m.assigned_at else None,
            }
            for m, email, full_name in rows
        ],
        "pending_invites": [
            {
                "id": inv.id,
                "email": inv.email,
                "permissions": inv.permissions,
                "created_at": inv.created_at.isoformat() if inv.created_at else None,
            }
            for inv in invites
        ],
    }


def add_member(
    db: Session,
    scope: str,
    entity_id: int,
    *,
    email: str,
    permissions: dict | None,
    assigned_by: int,
) -> dict:
    """Add an existing user by email, or leave an invite for when that email signs up."""
    email_norm = normalize_email(email)
    if not email_norm:
        raise HTTPException(status_code=400, detail="email is required")
    perms = clean_permissions(scope, permissions)

    user = db.execute(select(User).where(User.email == email_norm)).scalar_one_or_none()

    if user is None:
        inv = db.execute(
            select(TeamInvite).where(
                TeamInvite.scope == scope,
                TeamInvite.entity_id == entity_id,
                TeamInvite.email == email_norm,
            )
        ).scalar_one_or_none()
        if inv:
            inv.permissions = perms
            inv.is_active = True
            inv.invited_by = assigned_by
        else:
            inv = TeamInvite(
                scope=scope,
                entity_id=entity_id,
                email=email_norm,
                permissions=perms,
                is_active=True,
                invited_by=assigned_by,
            )
            db.add(inv)
        db.commit()
        db.refresh(inv)
        return {"invited": True, "invite_id": inv.id, "email": email_norm}

    if get_member(db, scope, entity_id, user.id) is not None:
        raise HTTPException(status_code=400, detail=f"User is already assigned to this {scope}")

    model, fk = member_model(scope)
    member = model(
        user_id=user.id,
        role=role_for(perms),
        permissions=perms,
        assigned_by=assigned_by,
    )
    setattr(member, fk, entity_id)
    db.add(member)
    assign_role(db, user_id=user.id, role=SCOPE_TO_ROLE[scope], assigned_by=assigned_by)
    db.commit()
    db.refresh(member)
    return {"invited": False, "member_id": member.id, "user_id": user.id, "role": member.role, "permissions": perms}


def update_member_permissions(db: Session, scope: str, entity_id: int, user_id: int, permissions: dict) -> dict:
    member = get_member(db, scope, entity_id, user_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Member not found")
    perms = clean_permissions(scope, permissions)
    member.permissions = perms
    member.role = role_for(perms)
    db.commit()
    return {"user_id": user_id, "role": member.role, "permissions": perms}


def remove_member(db: Session, scope: str, entity_id: int, user_id: int) -> None:
    member = get_member(db, scope, entity_id, user_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Member not found")
    # the role tag stays: the user may belong to other teams
    db.delete(member)
    db.commit()
