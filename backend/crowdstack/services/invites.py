from datetime import datetime, timezone

from sqlalchemy.orm import Session

from crowdstack.core.roles_registry import SCOPE_TO_ROLE
from crowdstack.models import TeamInvite
from crowdstack.services.roles import assign_role
from crowdstack.services.teams import get_member, member_model, role_for


def accept_invites_for_user(db: Session, *, user_id: int, email: str) -> int:
    if not email:
        return 0

    invites = (
        db.query(TeamInvite)
        .filter(
            TeamInvite.email == email,
            TeamInvite.is_active.is_(True),
            TeamInvite.accepted_user_id.is_(None),
        )
        .all()
    )

    accepted = 0
    for inv in invites:
        mem = get_member(db, inv.scope, inv.entity_id, user_id)
        if mem:
            mem.permissions = inv.permissions
            mem.role = role_for(inv.permissions or {})
        else:
            model, fk = member_model(inv.scope)
            mem = model(
                user_id=user_id,
                role=role_for(inv.permissions or {}),
                permissions=inv.permissions or {},
                assigned_by=inv.invited_by,
            )
            setattr(mem, fk, inv.entity_id)
            db.add(mem)

        assign_role(db, user_id=user_id, role=SCOPE_TO_ROLE[inv.scope], assigned_by=inv.invited_by)

        inv.accepted_user_id = user_id
        inv.accepted_at = datetime.now(timezone.utc)
        inv.is_active = False
        accepted += 1

    if accepted:
        db.commit()

    return accepted
