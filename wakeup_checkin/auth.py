import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import settings
from .errors import NotSignedInError

logger = logging.getLogger(__name__)

# missing credentials are reported through NotSignedInError, not HTTPBearer's own 403
bearer = HTTPBearer(auto_error=False)


def create_token(user_id: str, now: Optional[datetime] = None) -> str:
    """
    Session token issued after the identity provider sign-in:
    - sub = our user id (email or provider subject)
    - lifetime = JWT_EXPIRE_DAYS
    """
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "iss": settings.JWT_ISS,
        "aud": settings.JWT_AUD,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(days=settings.JWT_EXPIRE_DAYS)).timestamp()),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm="HS256")


def parse_token(token: str) -> str:
    try:
        claims = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=["HS256"],
            audience=settings.JWT_AUD,
            issuer=settings.JWT_ISS,
        )
    except jwt.ExpiredSignatureError:
        raise NotSignedInError("로그인이 만료되었습니다. 다시 로그인해주세요.")
    except jwt.PyJWTError as exc:
        logger.info("Rejected session token: %s", exc)
        raise NotSignedInError()

    user_id = claims.get("sub")
    if not user_id:
        raise NotSignedInError()
    return user_id


def get_current_user_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> str:
    if creds is None:
        raise NotSignedInError()
    return parse_token(creds.credentials)


def get_optional_user_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Optional[str]:
    """Leaderboard is public; a valid token only adds the "(나)" highlight."""
    if creds is None:
        return None
    try:
        return parse_token(creds.credentials)
    except NotSignedInError:
        # stale cached token: show the board anonymously
        return None
