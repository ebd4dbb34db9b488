from sqlalchemy.exc import OperationalError

from crowdstack.auth.deps import AuthContext
from crowdstack.services import access
from crowdstack.services.access import has_organizer_permission, resolve


def ctx_for(user, *roles):
    return AuthContext(user_id=user.id, roles=frozenset(roles), email=user.email)


def test_organizer_decision_example(db, make_user, make_organizer, add_membership):
    a = make_user()
    b = make_user()
    org = make_organizer(a)
    add_membership("organizer", org.id, b, {"edit_events": True, "full_admin": False})

    assert has_organizer_permission(db, ctx_for(a), org.id, "manage_promoters")
    assert not has_organizer_permission(db, ctx_for(b), org.id, "manage_promoters")
    assert has_organizer_permission(db, ctx_for(b), org.id, "edit_events")


def test_role_tags_do_not_grant_resource_access(db, make_user, make_organizer):
    a = make_user()
    b = make_user(roles=("event_organizer",))
    org = make_organizer(a)

    res = resolve(db, ctx_for(b, "event_organizer"), "organizer", org.id, "edit_events")
    assert not res.has_access


def test_superadmin_without_any_rows(db, make_user):
    root = make_user(roles=("superadmin",))
    res = resolve(db, ctx_for(root, "superadmin"), "event", 999, "closeout_event")
    assert res.has_access
    assert res.access_source == "superadmin"


def test_missing_resource_is_denied(db, make_user):
    u = make_user()
    assert not resolve(db, ctx_for(u), "venue", 12345, "edit_venue").has_access


def test_event_access_through_venue_membership(db, make_user, make_organizer, make_venue, make_event, add_membership):
    org_owner = make_user()
    venue_owner = make_user()
    door = make_user()
    org = make_organizer(org_owner)
    venue = make_venue(venue_owner)
    event = make_event(org, venue=venue)
    add_membership("venue", venue.id, door, {"manage_guests": True})

    res = resolve(db, ctx_for(door), "event", event.id, "manage_guests")
    assert res.has_access
    assert res.access_source == "membership"
    assert not resolve(db, ctx_for(door), "event", event.id, "edit_events").has_access

    res = resolve(db, ctx_for(venue_owner), "event", event.id, "edit_events")
    assert res.access_source == "venue_creator"


def test_event_without_venue_skips_venue_path(db, make_user, make_organizer, make_venue, make_event, add_membership):
    org_owner = make_user()
    venue_member = make_user()
    org = make_organizer(org_owner)
    venue = make_venue(make_user())
    add_membership("venue", venue.id, venue_member, {"full_admin": True})
    event = make_event(org)

    assert not resolve(db, ctx_for(venue_member), "event", event.id, "manage_guests").has_access


def test_transferred_owner_is_honoured(db, make_user, make_organizer, make_event):
    creator = make_user()
    new_owner = make_user()
    org = make_organizer(creator)
    event = make_event(org, owner=new_owner)

    res = resolve(db, ctx_for(new_owner), "event", event.id, "closeout_event")
    assert res.has_access
    assert res.access_source == "owner"
    assert res.is_owner


def test_db_failure_fails_closed(db, make_user, make_organizer, monkeypatch):
    a = make_user()
    org = make_organizer(a)

    def boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection lost"))

    monkeypatch.setitem(access._LOADERS, "organizer", boom)
    res = resolve(db, ctx_for(a), "organizer", org.id, "edit_events")
    assert not res.has_access
    assert res.access_source == "none"


def test_access_endpoint(client, login, make_user, make_organizer, make_event, add_membership):
    a = make_user()
    b = make_user()
    org = make_organizer(a)
    add_membership("organizer", org.id, b, {"edit_events": True})
    event = make_event(org)

    r = login(b).get(f"/events/{event.id}/access")
    assert r.status_code == 200
    body = r.json()
    assert body["has_access"] is True
    assert body["access_source"] == "membership"
    assert body["permissions"] == {"edit_events": True}

    outsider = make_user()
    r = login(outsider).get(f"/events/{event.id}/access")
    assert r.status_code == 200
    assert r.json()["has_access"] is False
