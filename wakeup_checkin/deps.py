from datetime import date, datetime
from typing import Callable, Generator
from zoneinfo import ZoneInfo
from fastapi import Depends
from sqlmodel import Session
from .config import settings
from .db import engine, get_session
from .services.realtime import ChangeFeed, feed


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


def get_session_factory() -> Callable[[], Session]:
    """For code that outlives a request (the leaderboard stream)."""
    return lambda: Session(engine)


def get_feed() -> ChangeFeed:
    return feed


def get_now() -> datetime:
    return datetime.now(ZoneInfo(settings.DEFAULT_TZ))


def get_clock() -> Callable[[], datetime]:
    """The "now" source itself, for the stream that reads it again on every change."""
    return get_now


def get_today(now: datetime = Depends(get_now)) -> date:
    return now.date()
