import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["IDENTITY_JWT_SECRET"] = "test-identity-secret"
os.environ["QR_PASS_SECRET"] = "test-qr-secret"
os.environ["COOKIE_SECURE"] = "false"
os.environ["SUPERADMIN_EMAILS"] = "root@crowdstack.test"
os.environ["POSTMARK_SERVER_TOKEN"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from crowdstack.auth.deps import get_jwt_config  # noqa: E402
from crowdstack.auth.jwt_tokens import create_access_token  # noqa: E402
from crowdstack.core.db import Base, get_db  # noqa: E402
from crowdstack.main import app  # noqa: E402
from crowdstack.models import (  # noqa: E402
    Event,
    Organizer,
    OrganizerUser,
    Promoter,
    User,
    UserRole,
    Venue,
    VenueUser,
)


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def login(client):
    """Switch the test client to act as `user`."""

    def _login(user: User) -> TestClient:
        client.cookies.set("access_token", create_access_token(get_jwt_config(), user.id))
        return client

    return _login


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(email: str | None = None, roles: tuple[str, ...] = (), full_name: str | None = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            external_id=f"ext-{n}",
            email=(email or f"user{n}@crowdstack.test").lower(),
            full_name=full_name or f"User {n}",
        )
        db.add(user)
        db.flush()
        for role in roles:
            db.add(UserRole(user_id=user.id, role=role))
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_organizer(db):
    def _make(creator: User, name: str = "Night Owls") -> Organizer:
        org = Organizer(name=name, created_by=creator.id)
        db.add(org)
        db.commit()
        db.refresh(org)
        return org

    return _make


@pytest.fixture()
def make_venue(db):
    def _make(creator: User, name: str = "Warehouse", auto_approve_events: bool = False) -> Venue:
        venue = Venue(name=name, created_by=creator.id, auto_approve_events=auto_approve_events)
        db.add(venue)
        db.commit()
        db.refresh(venue)
        return venue

    return _make


@pytest.fixture()
def add_membership(db):
    def _add(scope: str, entity_id: int, user: User, permissions: dict) -> None:
        if scope == "organizer":
            row = OrganizerUser(organizer_id=entity_id, user_id=user.id, role="staff", permissions=permissions)
        else:
            row = VenueUser(venue_id=entity_id, user_id=user.id, role="staff", permissions=permissions)
        if permissions.get("full_admin"):
            row.role = "admin"
        db.add(row)
        db.commit()

    return _add


@pytest.fixture()
def make_event(db):
    counter = {"n": 0}

    def _make(
        organizer: Organizer,
        *,
        owner: User | None = None,
        venue: Venue | None = None,
        status: str = "published",
        venue_approval_status: str | None = None,
        **kw,
    ) -> Event:
        counter["n"] += 1
        owner_id = owner.id if owner else organizer.created_by
        if venue_approval_status is None:
            venue_approval_status = "approved" if venue else "not_required"
        event = Event(
            organizer_id=organizer.id,
            venue_id=venue.id if venue else None,
            name=kw.pop("name", f"Event {counter['n']}"),
            slug=kw.pop("slug", f"event-{counter['n']}"),
            status=status,
            venue_approval_status=venue_approval_status,
            created_by=owner_id,
            owner_user_id=owner_id,
            **kw,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    return _make


@pytest.fixture()
def make_promoter(db):
    def _make(name: str = "Promo", email: str | None = "promo@crowdstack.test", user: User | None = None) -> Promoter:
        p = Promoter(name=name, email=email, user_id=user.id if user else None)
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    return _make
