"""
Data-access client for the check-in API.

Plays the part of the browser modules: signs in with the identity
provider's user object, submits check-ins and reads the leaderboard,
remembering `user` and `todayAuth` in an injected SessionStore.
"""
import logging
from datetime import date
from typing import Any, Dict, Optional

import requests

from .errors import (
    DuplicateCheckInError,
    InvalidRequestError,
    MismatchError,
    NotSignedInError,
    SubmissionFailure,
    UserNotFoundError,
)
from .session_store import SessionState, SessionStore, SessionUser, TodayAuth

logger = logging.getLogger(__name__)

_ERRORS_BY_STATUS = {
    400: InvalidRequestError,
    404: UserNotFoundError,
    409: DuplicateCheckInError,
    422: MismatchError,
}


class CheckInClient:
    def __init__(self, base_url: str, store: SessionStore, http=None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.store = store
        # requests.Session, or anything with the same get/post/patch shape
        self.http = http or requests.Session()
        self.timeout = timeout
        self.state: SessionState = store.load()

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _headers(self, auth: bool) -> Dict[str, str]:
        if not auth:
            return {}
        if not self.state.token:
            raise NotSignedInError()
        return {"Authorization": f"Bearer {self.state.token}"}

    def _request(self, method: str, path: str, auth: bool = False, **kwargs) -> Any:
        kwargs["headers"] = self._headers(auth)
        if isinstance(self.http, requests.Session):
            kwargs["timeout"] = self.timeout
        try:
            resp = getattr(self.http, method)(f"{self.base_url}{path}", **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method.upper(), path, exc)
            raise SubmissionFailure() from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code < 400:
            if not isinstance(body, dict):
                logger.error("%s %s answered %s without a JSON object", method.upper(), path, resp.status_code)
                raise SubmissionFailure()
            return body

        message = (body.get("error") or body.get("detail")) if isinstance(body, dict) else None
        if not isinstance(message, str):
            message = None
        if resp.status_code in (401, 403):
            raise NotSignedInError(message)
        error_cls = _ERRORS_BY_STATUS.get(resp.status_code, SubmissionFailure)
        raise error_cls(message)

    # ------------------------------------------------------------------
    # session
    # ------------------------------------------------------------------

    @property
    def user(self) -> Optional[SessionUser]:
        return self.state.user

    def sign_in(self, claims: Dict[str, Any]) -> SessionUser:
        body = self._request("post", "/api/v1/auth/login", json=claims)
        user = SessionUser.model_validate(body["user"])
        self.state = self.store.remember_user(user, body["token"])
        logger.info("Signed in as %s", user.id)
        return user

    def sign_out(self) -> None:
        self.store.clear()
        self.state = SessionState()

    def profile(self) -> Dict[str, Any]:
        return self._request("get", "/api/v1/users/me", auth=True)["data"]

    def update_profile(self, **updates) -> Dict[str, Any]:
        data = self._request("patch", "/api/v1/users/me", auth=True, json=updates)["data"]
        self.state = self.store.remember_user(SessionUser.model_validate(data), self.state.token)
        return data

    # ------------------------------------------------------------------
    # check-in / rankings
    # ------------------------------------------------------------------

    def today_quote(self) -> Dict[str, str]:
        return self._request("get", "/api/v1/quote/today")["data"]

    def check_in(self, text: str) -> Dict[str, Any]:
        """todayAuth is written only after the server accepted the check-in."""
        data = self._request("post", "/api/v1/checkins", auth=True, json={"text": text})["data"]
        checkin = data["checkin"]
        self.state = self.store.remember_checkin(
            TodayAuth(date=checkin["auth_date"], time=checkin["auth_time"], quote=checkin["quote"])
        )
        return data

    def today_auth(self, day: date) -> Optional[TodayAuth]:
        return self.store.today_auth(day)

    def today_rankings(self, day: Optional[date] = None) -> Dict[str, Any]:
        params = {"date": day.isoformat()} if day else None
        return self._request("get", "/api/v1/rankings", auth=bool(self.state.token), params=params)

    def my_rank(self, day: Optional[date] = None) -> Optional[int]:
        params = {"date": day.isoformat()} if day else None
        return self._request("get", "/api/v1/rankings/me", auth=True, params=params)["data"]["rank"]
