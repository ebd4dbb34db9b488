import logging

from sqlalchemy import select

from crowdstack.core.db import SessionLocal
from crowdstack.core.permissions_registry import CAPABILITIES
from crowdstack.models.capability import Capability

log = logging.getLogger("crowdstack.sync_permissions")


def sync_capabilities(db) -> tuple[int, int, int]:
    """Upsert the in-code registry into `capabilities`. Returns (created, updated, deactivated)."""
    existing = {c.code: c for c in db.scalars(select(Capability)).all()}

    created = 0
    updated = 0
    for cap in CAPABILITIES:
        scopes = ",".join(cap.scopes)
        row = existing.pop(cap.code, None)
        if row is None:
            db.add(
                Capability(
                    code=cap.code,
                    scopes=scopes,
                    title=cap.title,
                    description=cap.description,
                    is_active=True,
                )
            )
            created += 1
            continue

        changed = False
        if row.scopes != scopes:
            row.scopes = scopes
            changed = True
        if row.title != cap.title:
            row.title = cap.title
            changed = True
        if row.description != cap.description:
            row.description = cap.description
            changed = True
        if not row.is_active:
            row.is_active = True
            changed = True
        if changed:
            updated += 1

    # codes removed from the registry stay in the table but are hidden
    deactivated = 0
    for row in existing.values():
        if row.is_active:
            row.is_active = False
            deactivated += 1

    db.commit()
    return created, updated, deactivated


def main() -> None:
    with SessionLocal() as db:
        created, updated, deactivated = sync_capabilities(db)
    log.info(
        "Capabilities sync done. created=%s updated=%s deactivated=%s",
        created,
        updated,
        deactivated,
    )


if __name__ == "__main__":
    from crowdstack.core.logging_config import setup_logging

    setup_logging()
    main()
