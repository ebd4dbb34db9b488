"""Send 'your event starts soon' reminder emails to registered attendees.

Run this script periodically (e.g. every 10 minutes) from the backend environment.
It sends a reminder ~REMINDER_HOURS before the event starts (best-effort) and marks
registrations to avoid duplicates.

Env:
  - DATABASE_URL (via crowdstack.core.config)
  - POSTMARK_SERVER_TOKEN / EMAIL_FROM
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from crowdstack.core.db import SessionLocal
from crowdstack.core.logging_config import setup_logging
from crowdstack.models import Attendee, Event, Registration
from crowdstack.services import notify

log = logging.getLogger("crowdstack.reminders")

REMINDER_HOURS = int(os.getenv("REMINDER_HOURS", "24"))
WINDOW_MINUTES = int(os.getenv("REMINDER_WINDOW_MINUTES", "15"))  # window around the exact mark

# DRY_RUN=1 will not send, only log matches
DRY_RUN = os.getenv("DRY_RUN", "").strip() in ("1", "true", "yes")


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def main(now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    target = now + timedelta(hours=REMINDER_HOURS)
    win_start = target - timedelta(minutes=WINDOW_MINUTES)
    win_end = target + timedelta(minutes=WINDOW_MINUTES)

    sent = 0
    with SessionLocal() as db:
        q = (
            select(Registration, Attendee, Event)
            .join(Attendee, Attendee.id == Registration.attendee_id)
            .join(Event, Event.id == Registration.event_id)
            .where(
                Event.status == "published",
                Event.venue_approval_status.in_(("approved", "not_required")),
                Event.start_time.is_not(None),
                Registration.reminder_sent_at.is_(None),
            )
        )
        for reg, attendee, event in db.execute(q).all():
            start = _as_utc(event.start_time)
            if not (win_start <= start <= win_end):
                continue
            if not attendee.email:
                continue

            if DRY_RUN:
                log.info("DRY_RUN match: registration=%s email=%s event=%s start=%s", reg.id, attendee.email, event.id, start)
                continue

            ok = notify.notify_event_reminder(
                email=attendee.email,
                attendee_name=attendee.name,
                event_name=event.name,
                starts_at=start.strftime("%d %b %H:%M UTC"),
                slug=event.slug,
            )
            if ok:
                reg.reminder_sent_at = datetime.now(timezone.utc)
                sent += 1

        if sent:
            db.commit()

    return sent


if __name__ == "__main__":
    setup_logging()
    n = main()
    log.info("sent=%s", n)
