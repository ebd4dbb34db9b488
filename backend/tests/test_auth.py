import time

import jwt
from sqlalchemy import select

from crowdstack.core.config import settings
from crowdstack.models import OrganizerUser, TeamInvite, User, UserRole


def identity_token(sub: str, email: str, *, secret: str = "test-identity-secret", **extra) -> str:
    now = int(time.time())
    payload = {
        "sub": sub,
        "email": email,
        "aud": "authenticated",
        "iat": now,
        "exp": now + 600,
        **extra,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def test_session_creates_user_and_sets_cookie(client, db):
    token = identity_token("abc-1", "Ana@Example.com", user_metadata={"full_name": "Ana"})
    r = client.post("/auth/session", json={"access_token": token})
    assert r.status_code == 204
    assert "access_token=" in r.headers["set-cookie"]
    assert "httponly" in r.headers["set-cookie"].lower()

    user = db.execute(select(User).where(User.external_id == "abc-1")).scalar_one()
    assert user.email == "ana@example.com"
    assert user.full_name == "Ana"

    me = client.get("/me")
    assert me.status_code == 200
    assert me.json()["email"] == "ana@example.com"


def test_session_rejects_bad_token(client):
    token = identity_token("abc-1", "a@example.com", secret="wrong")
    r = client.post("/auth/session", json={"access_token": token})
    assert r.status_code == 401


def test_session_requires_email(client):
    token = identity_token("abc-1", "")
    assert client.post("/auth/session", json={"access_token": token}).status_code == 401


def test_session_links_existing_user_by_email(client, db, make_user):
    existing = make_user(email="old@example.com")
    r = client.post("/auth/session", json={"access_token": identity_token("new-sub", "old@example.com")})
    assert r.status_code == 204
    db.expire_all()
    assert db.get(User, existing.id).external_id == "new-sub"


def test_session_email_taken_by_other_user_is_409(client, db, make_user):
    ana = make_user(email="ana@example.com")
    bob = make_user(email="bob@example.com")

    # ana's identity now claims bob's address
    r = client.post("/auth/session", json={"access_token": identity_token(ana.external_id, "bob@example.com")})
    assert r.status_code == 409
    assert "set-cookie" not in r.headers

    db.expire_all()
    assert db.get(User, ana.id).email == "ana@example.com"
    assert db.get(User, bob.id).email == "bob@example.com"


def test_superadmin_email_gets_role(client, db):
    r = client.post("/auth/session", json={"access_token": identity_token("root", "root@crowdstack.test")})
    assert r.status_code == 204
    me = client.get("/me").json()
    assert me["is_superadmin"] is True
    assert "superadmin" in me["roles"]


def test_pending_invites_are_accepted_on_sign_in(client, db, make_user, make_organizer):
    owner = make_user()
    org = make_organizer(owner)
    db.add(
        TeamInvite(
            scope="organizer",
            entity_id=org.id,
            email="newbie@example.com",
            permissions={"manage_guests": True},
            is_active=True,
            invited_by=owner.id,
        )
    )
    db.commit()

    r = client.post("/auth/session", json={"access_token": identity_token("nb", "newbie@example.com")})
    assert r.status_code == 204

    user = db.execute(select(User).where(User.email == "newbie@example.com")).scalar_one()
    member = db.execute(
        select(OrganizerUser).where(OrganizerUser.organizer_id == org.id, OrganizerUser.user_id == user.id)
    ).scalar_one()
    assert member.permissions == {"manage_guests": True}
    assert member.role == "staff"
    roles = db.scalars(select(UserRole.role).where(UserRole.user_id == user.id)).all()
    assert "event_organizer" in roles

    inv = db.execute(select(TeamInvite)).scalar_one()
    assert inv.accepted_user_id == user.id
    assert inv.is_active is False


def test_me_requires_session(client):
    r = client.get("/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "Not authenticated"


def test_invalid_cookie_is_401(client):
    client.cookies.set("access_token", "garbage")
    r = client.get("/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"


def test_unknown_user_is_401(client, login, make_user, db):
    user = make_user()
    login(user)
    db.delete(user)
    db.commit()
    r = client.get("/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "User not found"


def test_dev_fallback_cookie(client, make_user, monkeypatch):
    user = make_user()
    client.cookies.set("localhost_user_id", str(user.id))
    assert client.get("/me").status_code == 401

    monkeypatch.setattr(settings, "DEV_AUTH_FALLBACK", True)
    r = client.get("/me")
    assert r.status_code == 200
    assert r.json()["id"] == user.id


def test_logout_clears_cookie(client):
    r = client.post("/auth/logout")
    assert r.status_code == 204
    assert "access_token=" in r.headers["set-cookie"]
