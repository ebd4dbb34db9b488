from sqlalchemy import select

from crowdstack.models import OrganizerUser, TeamInvite, UserRole, VenueUser


def test_create_organizer_requires_role(client, login, make_user):
    plain = make_user()
    r = login(plain).post("/organizers", json={"name": "Nope"})
    assert r.status_code == 403

    organizer = make_user(roles=("event_organizer",))
    r = login(organizer).post("/organizers", json={"name": "Night Owls"})
    assert r.status_code == 200
    assert r.json()["created_by"] == organizer.id


def test_create_venue_with_co_admin(client, login, db, make_user):
    admin = make_user(roles=("venue_admin",))
    co = make_user(email="co@example.com")
    r = login(admin).post("/venues", json={"name": "Warehouse", "admin_emails": ["CO@example.com"]})
    assert r.status_code == 200
    venue_id = r.json()["id"]

    member = db.execute(
        select(VenueUser).where(VenueUser.venue_id == venue_id, VenueUser.user_id == co.id)
    ).scalar_one()
    assert member.role == "admin"
    assert member.permissions["full_admin"] is True


def test_add_existing_user_to_team(client, login, db, make_user, make_organizer):
    owner = make_user()
    staff = make_user(email="staff@example.com")
    org = make_organizer(owner)

    r = login(owner).post(
        f"/organizers/{org.id}/team",
        json={"email": "staff@example.com", "permissions": {"edit_events": True}},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["invited"] is False
    assert body["role"] == "staff"
    assert body["permissions"]["edit_events"] is True
    assert body["permissions"]["manage_users"] is False

    roles = db.scalars(select(UserRole.role).where(UserRole.user_id == staff.id)).all()
    assert roles == ["event_organizer"]

    r = client.post(f"/organizers/{org.id}/team", json={"email": "staff@example.com"})
    assert r.status_code == 400


def test_add_unknown_email_creates_invite(client, login, db, make_user, make_organizer):
    owner = make_user()
    org = make_organizer(owner)

    r = login(owner).post(f"/organizers/{org.id}/team", json={"email": "Later@Example.com"})
    assert r.status_code == 200
    assert r.json()["invited"] is True

    inv = db.execute(select(TeamInvite)).scalar_one()
    assert inv.email == "later@example.com"
    assert inv.permissions["view_settings"] is True

    listing = client.get(f"/organizers/{org.id}/team").json()
    assert listing["members"] == []
    assert [i["email"] for i in listing["pending_invites"]] == ["later@example.com"]


def test_unknown_permission_is_rejected(client, login, make_user, make_organizer):
    owner = make_user()
    make_user(email="x@example.com")
    org = make_organizer(owner)
    r = login(owner).post(
        f"/organizers/{org.id}/team",
        json={"email": "x@example.com", "permissions": {"approve_events": True}},
    )
    assert r.status_code == 400


def test_team_requires_manage_users(client, login, make_user, make_organizer, add_membership):
    owner = make_user()
    editor = make_user()
    org = make_organizer(owner)
    add_membership("organizer", org.id, editor, {"edit_events": True})

    assert login(editor).get(f"/organizers/{org.id}/team").status_code == 403
    assert client.get("/organizers/999/team").status_code == 404


def test_update_and_remove_member(client, login, db, make_user, make_organizer, add_membership):
    owner = make_user()
    staff = make_user()
    org = make_organizer(owner)
    add_membership("organizer", org.id, staff, {"edit_events": True})

    r = login(owner).patch(f"/organizers/{org.id}/team/{staff.id}", json={"permissions": {"full_admin": True}})
    assert r.status_code == 200
    assert r.json()["role"] == "admin"

    assert client.delete(f"/organizers/{org.id}/team/{staff.id}").status_code == 200
    assert db.execute(select(OrganizerUser).where(OrganizerUser.user_id == staff.id)).first() is None
    assert client.delete(f"/organizers/{org.id}/team/{staff.id}").status_code == 404


def test_edit_organizer_permission(client, login, make_user, make_organizer, add_membership):
    owner = make_user()
    staff = make_user()
    org = make_organizer(owner)
    add_membership("organizer", org.id, staff, {"view_settings": True})

    assert login(staff).patch(f"/organizers/{org.id}", json={"name": "Hijacked"}).status_code == 403
    r = login(owner).patch(f"/organizers/{org.id}", json={"name": "Renamed"})
    assert r.status_code == 200
    assert r.json()["name"] == "Renamed"

    # any membership can read
    r = login(staff).get(f"/organizers/{org.id}")
    assert r.status_code == 200
    assert r.json()["access"]["access_source"] == "membership"


def test_my_organizers(client, login, make_user, make_organizer, add_membership):
    owner = make_user()
    staff = make_user()
    org1 = make_organizer(owner, name="A")
    org2 = make_organizer(make_user(), name="B")
    add_membership("organizer", org2.id, owner, {"manage_guests": True})
    add_membership("organizer", org1.id, staff, {"manage_guests": True})

    rows = login(owner).get("/me/organizers").json()
    assert [(r["id"], r["role"]) for r in rows] == [(org1.id, "creator"), (org2.id, "staff")]
