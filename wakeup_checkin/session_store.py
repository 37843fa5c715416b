import json
import logging
import os
import datetime as dt
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class SessionUser(BaseModel):
    id: str
    name: Optional[str] = None
    profile_url: Optional[str] = None
    provider: Optional[str] = None


class TodayAuth(BaseModel):
    date: dt.date
    time: str
    quote: str


class SessionState(BaseModel):
    """
    What the client remembers between runs, stored under the keys
    `user` and `todayAuth` (plus the bearer token for the API).
    """
    model_config = ConfigDict(populate_by_name=True)

    version: int = SCHEMA_VERSION
    user: Optional[SessionUser] = None
    token: Optional[str] = None
    today_auth: Optional[TodayAuth] = Field(default=None, alias="todayAuth")


class SessionStore:
    """JSON-file session cache. Not transactional: read on start, written on change."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> SessionState:
        if not self.path.exists():
            return SessionState()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            state = SessionState.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return SessionState()
        if state.version != SCHEMA_VERSION:
            logger.info("Discarding session file with schema version %s", state.version)
            return SessionState()
        return state

    def save(self, state: SessionState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(
            state.model_dump_json(by_alias=True, exclude_none=True),
            encoding="utf-8",
        )
        os.replace(tmp, self.path)

    def remember_user(self, user: SessionUser, token: str) -> SessionState:
        state = self.load()
        state.user = user
        state.token = token
        self.save(state)
        return state

    def remember_checkin(self, auth: TodayAuth) -> SessionState:
        state = self.load()
        state.today_auth = auth
        self.save(state)
        return state

    def today_auth(self, day: dt.date) -> Optional[TodayAuth]:
        """Cached check-in, only if it belongs to `day`."""
        auth = self.load().today_auth
        if auth is not None and auth.date == day:
            return auth
        return None

    def clear(self) -> None:
        # sign-out forgets who we are; the stale todayAuth goes with it
        state = self.load()
        state.user = None
        state.token = None
        state.today_auth = None
        self.save(state)
