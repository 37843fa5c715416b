import logging
from datetime import date, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..errors import DuplicateCheckInError, MismatchError, SubmissionFailure
from ..models import CheckIn, User
from .quotes import quote_for
from .ranking import rank_of
from .realtime import ChangeEvent, ChangeFeed
from .users import ANONYMOUS

logger = logging.getLogger(__name__)


def get_today_checkin(session: Session, user_id: str, day: date) -> Optional[CheckIn]:
    return session.exec(
        select(CheckIn).where(
            CheckIn.user_id == user_id,
            CheckIn.auth_date == day,
        )
    ).first()


def list_checkins(session: Session, day: date, limit: int = 50) -> List[CheckIn]:
    """All of a day's check-ins, earliest first (id keeps insert order on ties)."""
    return list(
        session.exec(
            select(CheckIn)
            .where(CheckIn.auth_date == day)
            .order_by(CheckIn.auth_time, CheckIn.id)
            .limit(limit)
        ).all()
    )


def user_rank(session: Session, user_id: str, day: date) -> Optional[int]:
    # full day, not just the top `limit` rows shown on the board
    rows = session.exec(select(CheckIn).where(CheckIn.auth_date == day).order_by(CheckIn.id)).all()
    return rank_of(rows, day, user_id)


def submit_checkin(
    session: Session,
    user: User,
    typed_text: str,
    now: Optional[datetime] = None,
    tz: str = "UTC",
    feed: Optional[ChangeFeed] = None,
) -> CheckIn:
    """
    Wake-up check-in:
    - typed text must equal today's quote exactly
    - one check-in per user per day (pre-read, then the unique constraint)
    - a failed insert is reported, never retried
    """
    zone = ZoneInfo(tz)
    local = now.astimezone(zone) if now is not None else datetime.now(zone)
    day = local.date()

    if typed_text != quote_for(day):
        raise MismatchError()

    if get_today_checkin(session, user.id, day):
        logger.info("Rejected second check-in for %s on %s", user.id, day)
        raise DuplicateCheckInError()

    rec = CheckIn(
        user_id=user.id,
        user_name=user.name or ANONYMOUS,
        auth_time=local.strftime("%H:%M:%S"),
        auth_date=day,
        quote=typed_text,
    )
    try:
        session.add(rec)
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info("Concurrent duplicate check-in for %s on %s", user.id, day)
        raise DuplicateCheckInError()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Check-in insert failed for %s: %s", user.id, exc)
        raise SubmissionFailure() from exc
    session.refresh(rec)

    logger.info("User %s checked in at %s on %s", user.id, rec.auth_time, day)
    if feed is not None:
        feed.publish(ChangeEvent(table="rankings", kind="INSERT", auth_date=day, user_id=user.id))
    return rec
