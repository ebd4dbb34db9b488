from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import sessionmaker

from crowdstack.models import Attendee, Registration
from crowdstack.scripts import send_event_reminders


def _register(db, event, email):
    att = Attendee(name="Guest", email=email, phone="+1")
    db.add(att)
    db.flush()
    reg = Registration(attendee_id=att.id, event_id=event.id)
    db.add(reg)
    db.commit()
    return reg


def test_reminders_sent_once(engine, db, make_user, make_organizer, make_event, monkeypatch):
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    org = make_organizer(make_user())
    soon = make_event(org, start_time=now + timedelta(hours=send_event_reminders.REMINDER_HOURS))
    later = make_event(org, start_time=now + timedelta(days=10))
    hidden = make_event(org, status="draft", start_time=soon.start_time)
    reg = _register(db, soon, "a@example.com")
    _register(db, later, "b@example.com")
    _register(db, hidden, "c@example.com")

    sent_to = []

    def fake_notify(**kw):
        sent_to.append(kw["email"])
        return True

    monkeypatch.setattr(send_event_reminders, "SessionLocal", sessionmaker(bind=engine))
    monkeypatch.setattr(send_event_reminders.notify, "notify_event_reminder", fake_notify)

    assert send_event_reminders.main(now) == 1
    assert sent_to == ["a@example.com"]

    db.expire_all()
    assert db.get(Registration, reg.id).reminder_sent_at is not None

    assert send_event_reminders.main(now) == 0
    assert sent_to == ["a@example.com"]


def test_dry_run_sends_nothing(engine, db, make_user, make_organizer, make_event, monkeypatch):
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    event = make_event(
        make_organizer(make_user()),
        start_time=now + timedelta(hours=send_event_reminders.REMINDER_HOURS),
    )
    reg = _register(db, event, "a@example.com")

    calls = []
    monkeypatch.setattr(send_event_reminders, "SessionLocal", sessionmaker(bind=engine))
    monkeypatch.setattr(send_event_reminders, "DRY_RUN", True)
    monkeypatch.setattr(send_event_reminders.notify, "notify_event_reminder", lambda **kw: calls.append(kw))

    assert send_event_reminders.main(now) == 0
    assert calls == []
    db.expire_all()
    assert db.get(Registration, reg.id).reminder_sent_at is None
