from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import jwt  # PyJWT

from crowdstack.core.config import settings

QR_PASS_TYPE = "qr_pass"


class QRPassError(Exception):
    pass


@dataclass(frozen=True)
class QRPass:
    registration_id: int
    event_id: int
    attendee_id: int


def generate_qr_pass_token(registration_id: int, event_id: int, attendee_id: int, *, secret: str | None = None) -> str:
    payload: dict[str, Any] = {
        "registration_id": registration_id,
        "event_id": event_id,
        "attendee_id": attendee_id,
        "iat": int(time.time()),
        "typ": QR_PASS_TYPE,
    }
    return jwt.encode(payload, secret or settings.QR_PASS_SECRET, algorithm="HS256")


def verify_qr_pass_token(token: str, *, secret: str | None = None) -> QRPass:
    if not token:
        raise QRPassError("token is empty")
    try:
        payload = jwt.decode(
            token,
            secret or settings.QR_PASS_SECRET,
            algorithms=["HS256"],
            options={"require": ["registration_id", "event_id", "attendee_id", "typ"]},
        )
    except jwt.InvalidTokenError as e:
        raise QRPassError(str(e))

    if payload.get("typ") != QR_PASS_TYPE:
        raise QRPassError("not a QR pass")

    try:
        return QRPass(
            registration_id=int(payload["registration_id"]),
            event_id=int(payload["event_id"]),
            attendee_id=int(payload["attendee_id"]),
        )
    except (TypeError, ValueError):
        raise QRPassError("malformed QR pass")
