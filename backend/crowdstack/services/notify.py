from __future__ import annotations

import json
import logging
import urllib.request

from crowdstack.core.config import settings

log = logging.getLogger("crowdstack.notify")

POSTMARK_API_URL = "https://api.postmarkapp.com/email"


def send_email(to: str, subject: str, text: str, *, tag: str | None = None) -> bool:
    """Best-effort transactional email via Postmark.

    Returns True if the provider accepted the message, else False. Never raises.
    """
    token = settings.POSTMARK_SERVER_TOKEN
    if not token:
        log.warning("email skipped: POSTMARK_SERVER_TOKEN is not set (to=%s subject=%r)", to, subject)
        return False
    if not to:
        return False

    data_obj = {
        "From": settings.EMAIL_FROM,
        "To": to,
        "Subject": subject,
        "TextBody": text,
        "MessageStream": "outbound",
    }
    if tag:
        data_obj["Tag"] = tag

    try:
        payload = json.dumps(data_obj, ensure_ascii=False).encode("utf-8")
        req = urllib.request.Request(
            POSTMARK_API_URL,
            data=payload,
            method="POST",
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "X-Postmark-Server-Token": token,
            },
        )
        with urllib.request.urlopen(req, timeout=5) as resp:
            body = resp.read().decode("utf-8", errors="ignore")
            js = json.loads(body) if body else {}
            ok = 200 <= resp.status < 300 and int(js.get("ErrorCode", 0) or 0) == 0
            if not ok:
                log.warning("postmark send failed status=%s body=%s", resp.status, body[:300])
            return ok
    except Exception as e:
        log.exception("postmark send exception: %s", e)
        return False


def notify_payout_ready(
    *,
    email: str,
    promoter_name: str,
    event_name: str,
    amount: int,
    currency: str,
    breakdown: str | None = None,
) -> bool:
    text = f"Hi {promoter_name},\n\n{event_name} has been closed out. Your payout is {currency} {amount:,}.\n"
    if breakdown:
        text += f"Breakdown: {breakdown}\n"
    text += f"\nDetails: {settings.PUBLIC_APP_URL}/app/promoter/earnings\n"
    return send_email(email, f"Your payout for {event_name} is ready", text, tag="payout-ready")


def notify_event_approval(
    *,
    email: str,
    event_name: str,
    venue_name: str,
    approved: bool,
    rejection_reason: str | None = None,
) -> bool:
    if approved:
        subject = f"{event_name} was approved by {venue_name}"
        text = f"Good news: {venue_name} approved {event_name}. It can now be published.\n"
    else:
        subject = f"{event_name} was not approved by {venue_name}"
        text = f"{venue_name} rejected {event_name}."
        if rejection_reason:
            text += f"\nReason: {rejection_reason}"
        text += "\n"
    return send_email(email, subject, text, tag="event-approval")


def notify_event_reminder(*, email: str, attendee_name: str, event_name: str, starts_at: str, slug: str) -> bool:
    text = (
        f"Hi {attendee_name},\n\n"
        f"{event_name} starts {starts_at}. Your QR pass is on the event page:\n"
        f"{settings.PUBLIC_APP_URL}/e/{slug}\n"
    )
    return send_email(email, f"Reminder: {event_name}", text, tag="event-reminder")
