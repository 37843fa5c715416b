import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from ..errors import UserNotFoundError
from ..models import User, utcnow

logger = logging.getLogger(__name__)

ANONYMOUS = "익명"


class Identity(BaseModel):
    id: str
    name: str = ANONYMOUS
    profile_url: Optional[str] = None
    provider: Optional[str] = None


def identity_from_claims(claims: Dict[str, Any]) -> Identity:
    """
    Maps the identity provider's user object onto our profile:
    - id: email, falling back to the provider's subject id
    - name: user_metadata.name, then user_metadata.nickname
    - profile_url: user_metadata.avatar_url, then user_metadata.picture
    - provider: app_metadata.provider
    """
    meta = claims.get("user_metadata") or {}
    app_meta = claims.get("app_metadata") or {}

    user_id = claims.get("email") or claims.get("id") or claims.get("sub")
    if not user_id:
        raise ValueError("identity claims carry neither an email nor a subject id")

    return Identity(
        id=user_id,
        name=meta.get("name") or meta.get("nickname") or ANONYMOUS,
        profile_url=meta.get("avatar_url") or meta.get("picture"),
        provider=app_meta.get("provider"),
    )


def get_user(session: Session, user_id: str) -> Optional[User]:
    return session.exec(select(User).where(User.id == user_id)).first()


def upsert_user(session: Session, identity: Identity) -> User:
    """Insert on first sign-in, refresh name/avatar on later ones (conflict key: id)."""
    user = get_user(session, identity.id)
    if user is None:
        user = User(**identity.model_dump())
        logger.info("Creating user %s via %s", identity.id, identity.provider)
    else:
        user.name = identity.name
        user.profile_url = identity.profile_url
        user.provider = identity.provider or user.provider
        user.updated_at = utcnow()

    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def update_user(session: Session, user_id: str, updates: Dict[str, Any]) -> User:
    user = get_user(session, user_id)
    if user is None:
        raise UserNotFoundError()

    for key in ("name", "profile_url"):
        if key in updates and updates[key] is not None:
            setattr(user, key, updates[key])
    user.updated_at = utcnow()

    session.add(user)
    session.commit()
    session.refresh(user)
    return user
