from datetime import date, datetime
import json
import logging
from typing import Callable, List, Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlmodel import Session

from .config import settings
from .db import init_db
from .errors import CheckInAppError, InvalidRequestError, UserNotFoundError
from .models import CheckIn, User
from .schemas import (
    ApiResponse,
    CheckInOut,
    CheckInRequest,
    LoginRequest,
    LoginResponse,
    RankingBoard,
    RankingRow,
    UserOut,
    UserUpdateRequest,
)
from .auth import create_token, get_current_user_id, get_optional_user_id
from .deps import get_clock, get_db, get_feed, get_now, get_session_factory, get_today
from .services.checkins import get_today_checkin, list_checkins, submit_checkin, user_rank
from .services.quotes import QUOTES, select_quote, today
from .services.ranking import compute_ranking
from .services.realtime import ChangeFeed, leaderboard_updates
from .services.users import get_user, identity_from_claims, update_user, upsert_user

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Wake-up Check-in API",
    version="1.0.0",
    description="기상 인증 – 오늘의 명언을 따라 입력하고 랭킹에 오르기"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    """Create the tables when the app comes up."""
    init_db()


@app.exception_handler(CheckInAppError)
async def checkin_error_handler(request: Request, exc: CheckInAppError):
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse(success=False, error=exc.message).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse(success=False, error=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # 400, not FastAPI's 422: 422 is reserved for a mistyped quote
    logger.warning("Malformed request on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=InvalidRequestError.status_code,
        content=ApiResponse(success=False, error=InvalidRequestError.message).model_dump(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content=ApiResponse(success=False, error="Internal Server Error").model_dump(),
    )


@app.get("/")
def root():
    return {"status": "ok", "app": "Wake-up Check-in API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


def _require_user(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFoundError()
    return user


def _user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        name=user.name,
        profile_url=user.profile_url,
        provider=user.provider,
    )


def _checkin_out(rec: CheckIn) -> CheckInOut:
    return CheckInOut(
        user_id=rec.user_id,
        user_name=rec.user_name,
        auth_time=rec.auth_time,
        auth_date=rec.auth_date,
        quote=rec.quote,
    )


def _board(rows: List[CheckIn], day: date, current_user_id: Optional[str], my_rank: Optional[int] = None) -> RankingBoard:
    return RankingBoard(
        date=day,
        rankings=[
            RankingRow(
                rank=entry.position,
                user_id=entry.record.user_id,
                name=entry.record.user_name,
                time=entry.record.auth_time,
                is_current_user=entry.record.user_id == current_user_id,
            )
            for entry in compute_ranking(rows, day)
        ],
        my_rank=my_rank,
    )


# ----------------------------------------------------
# SIGN-IN / PROFILE
# ----------------------------------------------------


@app.post("/api/v1/auth/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Sign-in after the identity provider's OAuth redirect:
    - provider claims → user row (insert or refresh)
    - returns our own JWT
    """
    try:
        identity = identity_from_claims(payload.model_dump())
    except ValueError as exc:
        logger.warning("Sign-in refused: %s", exc)
        raise InvalidRequestError("로그인 정보에 이메일 또는 사용자 ID가 없습니다.")

    user = upsert_user(db, identity)
    logger.info("User %s signed in", user.id)

    return LoginResponse(
        success=True,
        token=create_token(user.id),
        user=_user_out(user),
    )


@app.get("/api/v1/users/me", response_model=ApiResponse)
def read_me(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    user = _require_user(db, current_user_id)
    return ApiResponse(success=True, data=_user_out(user).model_dump())


@app.patch("/api/v1/users/me", response_model=ApiResponse)
def update_me(
    payload: UserUpdateRequest,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    user = update_user(db, current_user_id, payload.model_dump(exclude_unset=True))
    return ApiResponse(success=True, data=_user_out(user).model_dump())


# ----------------------------------------------------
# QUOTE OF THE DAY / CHECK-IN
# ----------------------------------------------------


@app.get("/api/v1/quote/today", response_model=ApiResponse)
def quote_today(day: date = Depends(get_today)):
    return ApiResponse(
        success=True,
        data={"quote": select_quote(QUOTES, day), "date": day.isoformat()},
    )


@app.post("/api/v1/checkins", response_model=ApiResponse, status_code=201)
def create_checkin(
    payload: CheckInRequest,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    feed: ChangeFeed = Depends(get_feed),
):
    """
    Check in by typing today's quote:
    - 422 when the text does not match
    - 409 when the user already checked in today
    - 503 when the row could not be stored
    """
    user = _require_user(db, current_user_id)
    rec = submit_checkin(db, user, payload.text, now=now, tz=settings.DEFAULT_TZ, feed=feed)
    rank = user_rank(db, user.id, rec.auth_date)
    return ApiResponse(
        success=True,
        data={"checkin": _checkin_out(rec).model_dump(mode="json"), "rank": rank},
    )


@app.get("/api/v1/checkins/today", response_model=ApiResponse)
def my_checkin_today(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    day: date = Depends(get_today),
):
    rec = get_today_checkin(db, current_user_id, day)
    if rec is None:
        raise HTTPException(status_code=404, detail="오늘의 인증 기록이 없습니다.")
    return ApiResponse(success=True, data=_checkin_out(rec).model_dump(mode="json"))


# ----------------------------------------------------
# RANKINGS
# ----------------------------------------------------


@app.get("/api/v1/rankings", response_model=RankingBoard)
def rankings(
    for_date: Optional[date] = Query(None, alias="date"),
    current_user_id: Optional[str] = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
    day: date = Depends(get_today),
):
    target = for_date or day
    rows = list_checkins(db, target, settings.RANKING_LIMIT)
    my_rank = user_rank(db, current_user_id, target) if current_user_id else None
    return _board(rows, target, current_user_id, my_rank)


@app.get("/api/v1/rankings/me", response_model=ApiResponse)
def read_my_rank(
    for_date: Optional[date] = Query(None, alias="date"),
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    day: date = Depends(get_today),
):
    target = for_date or day
    return ApiResponse(
        success=True,
        data={"date": target.isoformat(), "rank": user_rank(db, current_user_id, target)},
    )


def _load_board(session_factory: Callable[[], Session], day: date) -> RankingBoard:
    with session_factory() as db:
        rows = list_checkins(db, day, settings.RANKING_LIMIT)
    return _board(rows, day, None)


@app.get("/api/v1/rankings/stream")
async def rankings_stream(
    feed: ChangeFeed = Depends(get_feed),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Server-sent events: today's board now, then again after every new check-in."""

    async def fetch() -> RankingBoard:
        # "today" is re-read per fetch so a stream left open past midnight moves on
        day = today(settings.DEFAULT_TZ, clock())
        return await run_in_threadpool(_load_board, session_factory, day)

    async def events():
        async for board in leaderboard_updates(feed, fetch):
            yield f"data: {json.dumps(board.model_dump(mode='json'), ensure_ascii=False)}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")
