import pytest
from sqlalchemy import select

from crowdstack.core.permissions_registry import (
    CAPABILITIES,
    codes_for_scope,
    default_permissions,
    full_admin_permissions,
    validate_permissions,
)
from crowdstack.core.sync_permissions import sync_capabilities
from crowdstack.models import Capability


def test_scoped_codes():
    assert "approve_events" in codes_for_scope("venue")
    assert "approve_events" not in codes_for_scope("organizer")
    assert "edit_organizer" in codes_for_scope("organizer")


def test_default_bag_only_views_settings():
    bag = default_permissions("organizer")
    assert bag["view_settings"] is True
    assert not any(v for k, v in bag.items() if k != "view_settings")


def test_full_admin_bag():
    assert all(full_admin_permissions("venue").values())


def test_validate_rejects_unknown_and_non_bool():
    with pytest.raises(ValueError):
        validate_permissions("organizer", {"approve_events": True})
    with pytest.raises(ValueError):
        validate_permissions("venue", {"edit_events": "yes"})


def test_validate_fills_missing_keys():
    bag = validate_permissions("venue", {"manage_guests": True})
    assert bag["manage_guests"] is True
    assert bag["full_admin"] is False
    assert set(bag) == set(codes_for_scope("venue"))


def test_sync_capabilities(db):
    db.add(Capability(code="legacy_flag", scopes="venue", title="Legacy", is_active=True))
    db.add(Capability(code="edit_events", scopes="organizer", title="Old title", is_active=False))
    db.commit()

    created, updated, deactivated = sync_capabilities(db)
    assert created == len(CAPABILITIES) - 1
    assert updated == 1
    assert deactivated == 1

    edit = db.get(Capability, "edit_events")
    assert edit.is_active and edit.scopes == "organizer,venue"
    assert db.get(Capability, "legacy_flag").is_active is False

    assert sync_capabilities(db) == (0, 0, 0)


def test_capabilities_endpoint(client, login, db, make_user):
    sync_capabilities(db)
    r = login(make_user()).get("/capabilities")
    assert r.status_code == 200
    codes = {c["code"] for c in r.json()}
    assert codes == {c.code for c in CAPABILITIES}
    assert len(db.scalars(select(Capability)).all()) == len(CAPABILITIES)
