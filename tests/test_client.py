"""
CheckInClient against the in-process app: session cache written only on success.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
import requests

from conftest import FIXED_QUOTE, kakao_claims
from wakeup_checkin.client import CheckInClient
from wakeup_checkin.errors import (
    DuplicateCheckInError,
    InvalidRequestError,
    MismatchError,
    NotSignedInError,
    SubmissionFailure,
)
from wakeup_checkin.session_store import SessionStore, SessionUser

DAY = date(2024, 1, 2)


@pytest.fixture
def store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def api(client, store) -> CheckInClient:
    return CheckInClient("", store, http=client)


def test_sign_in_remembers_user(api, store) -> None:
    user = api.sign_in(kakao_claims())
    assert user.id == "x@example.com"
    assert store.load().user.name == "김민수"
    assert api.profile()["provider"] == "kakao"


def test_session_survives_new_client(client, api, store) -> None:
    api.sign_in(kakao_claims())
    again = CheckInClient("", store, http=client)
    assert again.user.id == "x@example.com"
    assert again.profile()["id"] == "x@example.com"


def test_check_in_writes_today_auth(api, store) -> None:
    api.sign_in(kakao_claims())
    quote = api.today_quote()
    assert quote == {"quote": FIXED_QUOTE, "date": "2024-01-02"}

    result = api.check_in(quote["quote"])
    assert result["rank"] == 1
    assert api.today_auth(DAY).time == "06:15:00"
    assert api.my_rank() == 1

    board = api.today_rankings()
    assert board["rankings"][0]["is_current_user"] is True
    assert board["my_rank"] == 1


def test_failed_check_in_leaves_cache_untouched(api, store) -> None:
    api.sign_in(kakao_claims())
    with pytest.raises(MismatchError):
        api.check_in("틀린 문장")
    assert store.today_auth(DAY) is None


def test_duplicate_surfaces_as_error(api) -> None:
    api.sign_in(kakao_claims())
    api.check_in(FIXED_QUOTE)
    with pytest.raises(DuplicateCheckInError) as exc_info:
        api.check_in(FIXED_QUOTE)
    assert exc_info.value.message == "오늘은 이미 기상 인증을 완료했습니다."


def test_needs_sign_in(api) -> None:
    with pytest.raises(NotSignedInError):
        api.check_in(FIXED_QUOTE)
    assert api.today_rankings(DAY)["rankings"] == []


def test_sign_out_clears_session(api, store) -> None:
    api.sign_in(kakao_claims())
    api.check_in(FIXED_QUOTE)
    api.sign_out()
    assert api.user is None
    assert store.load().user is None
    with pytest.raises(NotSignedInError):
        api.profile()


def test_update_profile_refreshes_cache(api, store) -> None:
    api.sign_in(kakao_claims())
    api.update_profile(name="민수")
    assert store.load().user.name == "민수"


def test_network_error_is_submission_failure(store) -> None:
    class Offline:
        def post(self, url, **kwargs):
            raise requests.ConnectionError("no route to host")

    api = CheckInClient("http://offline.invalid", store, http=Offline())
    with pytest.raises(SubmissionFailure):
        api.sign_in(kakao_claims())
    assert store.load().user is None


def test_malformed_request_is_not_a_mismatch(api) -> None:
    api.sign_in(kakao_claims())
    with pytest.raises(InvalidRequestError) as exc_info:
        api._request("post", "/api/v1/checkins", auth=True, json={})
    assert not isinstance(exc_info.value, MismatchError)
    assert exc_info.value.message == "요청 형식이 올바르지 않습니다."


def test_stale_token_still_reads_board(client, store) -> None:
    store.remember_user(SessionUser(id="x@example.com", name="김민수"), "expired-token")
    api = CheckInClient("", store, http=client)
    board = api.today_rankings(DAY)
    assert board["rankings"] == []
    assert board["my_rank"] is None
    with pytest.raises(NotSignedInError):
        api.my_rank(DAY)


class CannedResponse:
    def __init__(self, status_code: int, body=None, text: str = ""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError(f"not JSON: {self.text!r}")
        return self._body


class Canned:
    def __init__(self, response: CannedResponse):
        self.response = response

    def get(self, url, **kwargs):
        return self.response


def test_non_json_success_is_submission_failure(store) -> None:
    api = CheckInClient("http://proxy.invalid", store, http=Canned(CannedResponse(200, text="<html>ok</html>")))
    with pytest.raises(SubmissionFailure):
        api.today_quote()


def test_odd_error_bodies_keep_the_status_mapping(store) -> None:
    proxy_error = CheckInClient("http://proxy.invalid", store, http=Canned(CannedResponse(502, body=["bad gateway"])))
    with pytest.raises(SubmissionFailure):
        proxy_error.today_quote()

    duplicate = CheckInClient("http://proxy.invalid", store, http=Canned(CannedResponse(409, text="conflict")))
    with pytest.raises(DuplicateCheckInError) as exc_info:
        duplicate.today_quote()
    assert exc_info.value.message == "오늘은 이미 기상 인증을 완료했습니다."
