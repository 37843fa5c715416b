import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Optional, Union

# "06:15", "6:15:02", "오전 06:15", "오후 6:15", "6:15 PM"
_TIME_RE = re.compile(
    r"^\s*(?:(?P<pre>오전|오후|AM|PM)\s*)?"
    r"(?P<h>\d{1,2}):(?P<m>\d{2})(?::(?P<s>\d{2}))?"
    r"\s*(?P<post>AM|PM)?\s*$",
    re.IGNORECASE,
)

_PM = {"오후", "pm"}


@dataclass(frozen=True)
class RankedEntry:
    position: int
    record: Any


def normalize_time(value: str) -> str:
    """
    Wall-clock string → zero-padded 24-hour HH:MM[:SS].
    Lexicographic order of the result equals chronological order.
    """
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"Unrecognized time: {value!r}")

    hour = int(match.group("h"))
    minute = int(match.group("m"))
    second = match.group("s")
    meridiem = match.group("pre") or match.group("post")

    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"Unrecognized time: {value!r}")
        is_pm = meridiem.lower() in _PM
        hour = hour % 12 + (12 if is_pm else 0)

    if hour > 23 or minute > 59 or (second is not None and int(second) > 59):
        raise ValueError(f"Unrecognized time: {value!r}")

    out = f"{hour:02d}:{minute:02d}"
    if second is not None:
        out += f":{int(second):02d}"
    return out


def _as_date(value: Union[date, str]) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def compute_ranking(records: Iterable[Any], for_date: date) -> List[RankedEntry]:
    """
    Leaderboard for one date:
    - keep records whose auth_date is for_date
    - sort ascending by time (sorted() is stable, equal times keep input order)
    - positions 1..n, no gaps
    """
    todays = [r for r in records if _as_date(r.auth_date) == for_date]
    ordered = sorted(todays, key=lambda r: normalize_time(r.auth_time))
    return [RankedEntry(position=i + 1, record=r) for i, r in enumerate(ordered)]


def rank_of(records: Iterable[Any], for_date: date, user_id: str) -> Optional[int]:
    """1-based position of the user's first record on for_date, None if absent."""
    for entry in compute_ranking(records, for_date):
        if entry.record.user_id == user_id:
            return entry.position
    return None
