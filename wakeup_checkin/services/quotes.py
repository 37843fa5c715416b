from datetime import date, datetime
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from ..errors import ConfigurationError

QUOTES = [
    "성공은 준비된 기회를 만났을 때 일어난다.",
    "오늘 하루도 최선을 다해 살아가자.",
    "작은 변화가 큰 차이를 만든다.",
    "매일 조금씩 나아지는 것이 완벽이다.",
    "새로운 하루, 새로운 기회가 시작된다.",
    "꿈을 이루기 위한 첫걸음을 내디뎌라.",
    "포기하지 말고 끝까지 해보자.",
    "오늘의 노력이 내일의 성과를 만든다.",
]


def today(tz: str = "UTC", now: Optional[datetime] = None) -> date:
    """Current calendar date in the given IANA zone."""
    now = now or datetime.now(ZoneInfo(tz))
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(ZoneInfo(tz)).date()


def date_key(day: date) -> str:
    """Canonical date string the checksum runs over (YYYY-MM-DD)."""
    return day.isoformat()


def checksum(text: str) -> int:
    return sum(ord(ch) for ch in text)


def select_quote(catalog: Sequence[str], day: date) -> str:
    """
    Quote of the day:
    - sum of the character codes of the date string
    - modulo catalog size
    Same catalog + same date always gives the same quote, for every user.
    """
    if not catalog:
        raise ConfigurationError()
    return catalog[checksum(date_key(day)) % len(catalog)]


def quote_for(day: date, catalog: Sequence[str] = QUOTES) -> str:
    return select_quote(catalog, day)
