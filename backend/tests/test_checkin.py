from datetime import datetime, timezone

import pytest

from crowdstack.models import Attendee, Checkin, Event, EventDoorStaff, Registration
from crowdstack.services.qr_pass import generate_qr_pass_token


@pytest.fixture()
def registered(db, make_user, make_organizer, make_event):
    owner = make_user()
    org = make_organizer(owner)
    event = make_event(org)
    att = Attendee(name="Guest", email="guest@example.com", phone="+1")
    db.add(att)
    db.flush()
    reg = Registration(attendee_id=att.id, event_id=event.id)
    db.add(reg)
    db.commit()
    db.refresh(reg)
    return owner, org, event, reg


def test_check_in_by_qr_and_duplicate(client, login, registered):
    owner, _, event, reg = registered
    token = generate_qr_pass_token(reg.id, event.id, reg.attendee_id)

    r = login(owner).post(f"/events/{event.id}/checkin", json={"qr_token": token})
    assert r.status_code == 200
    assert r.json()["duplicate"] is False
    assert r.json()["attendee"]["name"] == "Guest"

    r = client.post(f"/events/{event.id}/checkin", json={"qr_token": token})
    assert r.status_code == 200
    assert r.json()["duplicate"] is True


def test_qr_for_other_event_is_rejected(client, login, make_event, registered):
    owner, org, event, reg = registered
    other = make_event(org)
    token = generate_qr_pass_token(reg.id, event.id, reg.attendee_id)

    r = login(owner).post(f"/events/{other.id}/checkin", json={"qr_token": token})
    assert r.status_code == 400

    r = client.post(f"/events/{other.id}/checkin", json={"registration_id": reg.id})
    assert r.status_code == 400
    r = client.post(f"/events/{event.id}/checkin", json={"registration_id": 9999})
    assert r.status_code == 404
    r = client.post(f"/events/{event.id}/checkin", json={"qr_token": "forged"})
    assert r.status_code == 400
    r = client.post(f"/events/{event.id}/checkin", json={})
    assert r.status_code == 400


def test_door_staff_can_check_in(client, login, db, make_user, registered):
    owner, _, event, reg = registered
    door = make_user()

    assert login(door).post(f"/events/{event.id}/checkin", json={"registration_id": reg.id}).status_code == 403

    r = login(owner).post(f"/events/{event.id}/door-staff", json={"email": door.email})
    assert r.status_code == 200
    assert r.json()["status"] == "active"

    r = login(door).post(f"/events/{event.id}/checkin", json={"registration_id": reg.id})
    assert r.status_code == 200

    login(owner).delete(f"/events/{event.id}/door-staff/{door.id}")
    ds = db.query(EventDoorStaff).filter_by(event_id=event.id, user_id=door.id).one()
    assert ds.status == "revoked"
    assert login(door).post(f"/events/{event.id}/checkin", json={"registration_id": reg.id}).status_code == 403


def test_manage_guests_membership_can_check_in(client, login, make_user, add_membership, registered):
    _, org, event, reg = registered
    staff = make_user()
    add_membership("organizer", org.id, staff, {"manage_guests": True})
    assert login(staff).post(f"/events/{event.id}/checkin", json={"registration_id": reg.id}).status_code == 200


def test_undo_and_reinstate(client, login, db, registered):
    owner, _, event, reg = registered
    login(owner).post(f"/events/{event.id}/checkin", json={"registration_id": reg.id})

    r = client.post(f"/events/{event.id}/checkin/{reg.id}/undo")
    assert r.status_code == 200
    chk = db.query(Checkin).filter_by(registration_id=reg.id).one()
    assert chk.undo_at is not None

    assert client.post(f"/events/{event.id}/checkin/{reg.id}/undo").status_code == 400

    r = client.post(f"/events/{event.id}/checkin", json={"registration_id": reg.id})
    assert r.json()["duplicate"] is False
    db.expire_all()
    chk = db.query(Checkin).filter_by(registration_id=reg.id).one()
    assert chk.undo_at is None
    assert db.query(Checkin).count() == 1


def test_locked_event_rejects_check_in(client, login, db, registered):
    owner, _, event, reg = registered
    ev = db.get(Event, event.id)
    ev.status = "closed"
    ev.locked_at = datetime.now(timezone.utc)
    db.commit()

    r = login(owner).post(f"/events/{event.id}/checkin", json={"registration_id": reg.id})
    assert r.status_code == 400
