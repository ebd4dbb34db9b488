import pytest
from fastapi import HTTPException
from sqlalchemy.orm import sessionmaker

from crowdstack.models import Event
from crowdstack.services.closeout import finalize_closeout
from crowdstack.services.events import transfer_ownership, update_event


def test_create_event_approval_status(client, login, make_user, make_organizer, make_venue):
    owner = make_user()
    org = make_organizer(owner)
    strict = make_venue(make_user(), name="Strict")
    relaxed = make_venue(make_user(), name="Relaxed", auto_approve_events=True)
    login(owner)

    r = client.post("/events", json={"organizer_id": org.id, "name": "No Venue Night"})
    assert r.status_code == 200
    body = r.json()
    assert body["venue_approval_status"] == "not_required"
    assert body["owner_user_id"] == owner.id
    assert body["slug"] == "no-venue-night"
    assert body["status"] == "draft"

    r = client.post("/events", json={"organizer_id": org.id, "venue_id": strict.id, "name": "Strict Night"})
    assert r.json()["venue_approval_status"] == "pending"

    r = client.post("/events", json={"organizer_id": org.id, "venue_id": relaxed.id, "name": "Relaxed Night"})
    assert r.json()["venue_approval_status"] == "approved"

    # duplicate names still get unique slugs
    r = client.post("/events", json={"organizer_id": org.id, "name": "No Venue Night"})
    assert r.json()["slug"].startswith("no-venue-night-")


def test_create_event_needs_edit_events(client, login, make_user, make_organizer, add_membership):
    owner = make_user()
    guest_staff = make_user()
    org = make_organizer(owner)
    add_membership("organizer", org.id, guest_staff, {"manage_guests": True})

    r = login(guest_staff).post("/events", json={"organizer_id": org.id, "name": "Sneaky"})
    assert r.status_code == 403
    r = client.post("/events", json={"organizer_id": 999, "name": "Ghost"})
    assert r.status_code == 404


def test_event_visibility(client, login, make_user, make_organizer, make_venue, make_event):
    owner = make_user()
    org = make_organizer(owner)
    venue = make_venue(make_user())
    public = make_event(org)
    draft = make_event(org, status="draft")
    pending = make_event(org, venue=venue, venue_approval_status="pending")

    assert client.get(f"/events/{public.id}").status_code == 200
    assert client.get(f"/events/by-slug/{public.slug}").status_code == 200
    assert client.get(f"/events/{draft.id}").status_code == 401
    assert client.get(f"/events/by-slug/{pending.slug}").status_code == 404

    assert login(make_user()).get(f"/events/{draft.id}").status_code == 403
    assert login(owner).get(f"/events/{draft.id}").status_code == 200


def test_update_event_and_lock(client, login, db, make_user, make_organizer, make_event):
    owner = make_user()
    root = make_user(roles=("superadmin",))
    org = make_organizer(owner)
    event = make_event(org, status="draft")

    r = login(owner).patch(f"/events/{event.id}", json={"name": "Renamed", "status": "published"})
    assert r.status_code == 200
    assert r.json()["status"] == "published"
    assert r.json()["version"] == 2

    ev = db.get(Event, event.id)
    ev.locked_at = ev.created_at
    ev.status = "closed"
    db.commit()

    assert client.patch(f"/events/{event.id}", json={"name": "Too late"}).status_code == 400
    r = login(root).patch(f"/events/{event.id}", json={"name": "Fixed typo"})
    assert r.status_code == 200
    assert r.json()["name"] == "Fixed typo"


def test_venue_approval(client, login, db, make_user, make_organizer, make_venue, make_event, add_membership):
    org_owner = make_user()
    venue_owner = make_user()
    venue_staff = make_user()
    org = make_organizer(org_owner)
    venue = make_venue(venue_owner)
    add_membership("venue", venue.id, venue_staff, {"manage_guests": True})
    event = make_event(org, venue=venue, venue_approval_status="pending")

    url = f"/venues/{venue.id}/events/{event.id}/approval"
    assert login(venue_staff).post(url, json={"action": "approve"}).status_code == 403
    assert login(org_owner).post(url, json={"action": "approve"}).status_code == 403

    r = login(venue_owner).post(url, json={"action": "reject", "rejection_reason": "Double booked"})
    assert r.status_code == 200
    assert r.json()["venue_approval_status"] == "rejected"
    assert r.json()["venue_rejection_reason"] == "Double booked"

    r = client.post(url, json={"action": "approve"})
    assert r.json()["venue_approval_status"] == "approved"
    assert r.json()["venue_rejection_reason"] is None

    pending = client.get(f"/venues/{venue.id}/events", params={"approval_status": "pending"}).json()
    assert pending == []


def test_admin_approval_override(client, login, make_user, make_organizer, make_venue, make_event):
    org = make_organizer(make_user())
    event = make_event(org, venue=make_venue(make_user()), venue_approval_status="pending")

    assert login(make_user()).post(f"/admin/events/{event.id}/approve", json={"action": "approve"}).status_code == 403
    r = login(make_user(roles=("superadmin",))).post(f"/admin/events/{event.id}/approve", json={"action": "approve"})
    assert r.status_code == 200
    assert r.json()["venue_approval_status"] == "approved"


def test_transfer_ownership(client, login, make_user, make_organizer, make_event, add_membership):
    owner = make_user()
    admin = make_user()
    heir = make_user()
    org = make_organizer(owner)
    add_membership("organizer", org.id, admin, {"full_admin": True})
    event = make_event(org, owner=owner)

    url = f"/events/{event.id}/transfer-ownership"
    assert login(admin).post(url, json={"new_owner_user_id": heir.id}).status_code == 403
    assert login(owner).post(url, json={"new_owner_user_id": 9999}).status_code == 404

    r = client.post(url, json={"new_owner_user_id": heir.id})
    assert r.status_code == 200
    assert r.json()["owner_user_id"] == heir.id

    access = login(heir).get(f"/events/{event.id}/access").json()
    assert access["access_source"] == "owner"
    # the organizer creator keeps access through the creator rule
    access = login(owner).get(f"/events/{event.id}/access").json()
    assert access["access_source"] == "organizer_creator"


def test_stale_update_cannot_reopen_closed_event(db, engine, make_user, make_organizer, make_event):
    owner = make_user()
    event = make_event(make_organizer(owner), status="draft")

    # a second request loaded the event before the closeout landed
    other = sessionmaker(bind=engine, autoflush=False)()
    try:
        stale = other.get(Event, event.id)
        assert stale.version == 1

        finalize_closeout(db, db.get(Event, event.id), user_id=owner.id)

        with pytest.raises(HTTPException) as exc:
            update_event(other, stale, is_superadmin=False, status="published")
        assert exc.value.status_code == 409
    finally:
        other.close()

    db.expire_all()
    ev = db.get(Event, event.id)
    assert ev.status == "closed"
    assert ev.is_locked
    assert ev.version == 2


def test_stale_edit_after_ownership_transfer_is_409(db, engine, make_user, make_organizer, make_event):
    owner = make_user()
    heir = make_user()
    event = make_event(make_organizer(owner))

    other = sessionmaker(bind=engine, autoflush=False)()
    try:
        stale = other.get(Event, event.id)

        transfer_ownership(db, db.get(Event, event.id), new_owner_id=heir.id)
        assert event.version == 2

        with pytest.raises(HTTPException) as exc:
            update_event(other, stale, is_superadmin=False, name="Renamed")
        assert exc.value.status_code == 409
    finally:
        other.close()

    db.expire_all()
    ev = db.get(Event, event.id)
    assert ev.owner_user_id == heir.id
    assert ev.name != "Renamed"
