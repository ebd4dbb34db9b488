from __future__ import annotations

from typing import Any

import jwt  # PyJWT


class IdentityTokenError(Exception):
    pass


def verify_identity_token(token: str, secret: str, audience: str) -> dict[str, Any]:
    """
    Validates an access token issued by the hosted identity provider.
    Returns {"sub": <external id>, "email": <lower-cased email>, "name": <str|None>}.
    """
    if not token:
        raise IdentityTokenError("token is empty")

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise IdentityTokenError("token expired")
    except jwt.InvalidTokenError as e:
        raise IdentityTokenError(f"invalid token: {e}")

    email = (claims.get("email") or "").strip().lower()
    if not email:
        raise IdentityTokenError("email is missing")

    meta = claims.get("user_metadata") or {}
    name = meta.get("full_name") or meta.get("name")

    return {"sub": str(claims["sub"]), "email": email, "name": name}
