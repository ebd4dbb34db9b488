from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdstack.auth.deps import get_jwt_config
from crowdstack.auth.identity import IdentityTokenError, verify_identity_token
from crowdstack.auth.jwt_tokens import create_access_token
from crowdstack.core.config import settings
from crowdstack.core.db import get_db
from crowdstack.models import User
from crowdstack.services.invites import accept_invites_for_user
from crowdstack.services.roles import assign_role

log = logging.getLogger("crowdstack.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


class SessionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    accessToken: str = Field(alias="access_token")


def _upsert_user(db: Session, *, external_id: str, email: str, name: str | None) -> User:
    user = db.execute(select(User).where(User.external_id == external_id)).scalar_one_or_none()
    if user is None:
        # account created before the identity provider switch: link by email
        user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if user is not None:
            user.external_id = external_id

    if user is None:
        user = User(external_id=external_id, email=email, full_name=name)
        db.add(user)
    else:
        if user.email != email:
            user.email = email
        if user.full_name is None and name:
            user.full_name = name

    try:
        db.commit()
    except IntegrityError:
        # users.email is unique: the address already belongs to another account
        db.rollback()
        log.warning("sign-in rejected: email %s is taken by another user (sub=%s)", email, external_id)
        raise HTTPException(409, "Email is already linked to another account")
    db.refresh(user)
    return user


@router.post("/session", status_code=status.HTTP_204_NO_CONTENT)
def create_session(payload: SessionIn, response: Response, db: Session = Depends(get_db)):
    try:
        claims = verify_identity_token(payload.accessToken, settings.IDENTITY_JWT_SECRET, settings.IDENTITY_JWT_AUD)
    except IdentityTokenError as e:
        raise HTTPException(status_code=401, detail=str(e))

    user = _upsert_user(db, external_id=claims["sub"], email=claims["email"], name=claims["name"])

    if user.email in settings.superadmin_emails():
        if assign_role(db, user_id=user.id, role="superadmin"):
            db.commit()

    accepted = accept_invites_for_user(db, user_id=user.id, email=user.email)
    if accepted:
        log.info("user %s accepted %s team invite(s)", user.id, accepted)

    token = create_access_token(get_jwt_config(), user.id)

    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        domain=settings.COOKIE_DOMAIN,
        path="/",
        max_age=settings.ACCESS_TOKEN_TTL_SECONDS,
    )
    return


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(response: Response):
    response.delete_cookie(key="access_token", domain=settings.COOKIE_DOMAIN, path="/")
    return
