"""Daily activity streaks and the ranks they earn."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..models import StreakInfo, StreakRank, StreakRecord

RANK_THRESHOLDS = (
    (StreakRank.PLATINUM, 60),
    (StreakRank.GOLD, 30),
    (StreakRank.SILVER, 10),
)


def activity_day(moment: datetime, utc_offset_hours: int) -> date:
    """Calendar day of ``moment`` in the streak time zone."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone(timedelta(hours=utc_offset_hours))).date()


def rank_from_streak(streak: int) -> StreakRank:
    if streak < 0:
        raise ValueError(f"streak must be >= 0, got {streak}")
    for rank, threshold in RANK_THRESHOLDS:
        if streak >= threshold:
            return rank
    return StreakRank.BRONZE


def days_to_next_rank(streak: int) -> Optional[int]:
    """Days still missing for the next rank; ``None`` once platinum is reached."""

    upcoming = None
    for _rank, threshold in RANK_THRESHOLDS:
        if streak >= threshold:
            break
        upcoming = threshold
    return None if upcoming is None else upcoming - streak


def advance_streak(
    record: Optional[StreakRecord], user_id: str, now: datetime, utc_offset_hours: int
) -> StreakRecord:
    """Apply an activity at ``now`` to the stored streak.

    Activity on the same day changes nothing, activity on the following day
    extends the streak, and a longer gap resets it to zero.
    """

    today = activity_day(now, utc_offset_hours)
    if record is None:
        return StreakRecord(user_id=user_id, last_activity_day=today, last_activity_at=now)

    if today <= record.last_activity_day:
        return record

    if today - record.last_activity_day == timedelta(days=1):
        streak = record.streak_count + 1
    else:
        streak = 0
    return StreakRecord(
        user_id=user_id,
        streak_count=streak,
        max_streak=max(record.max_streak, streak),
        last_activity_day=today,
        last_activity_at=now,
    )


def streak_info(record: Optional[StreakRecord]) -> StreakInfo:
    streak = record.streak_count if record is not None else 0
    return StreakInfo(
        streak_count=streak,
        max_streak=record.max_streak if record is not None else 0,
        rank=rank_from_streak(streak),
        days_to_next_rank=days_to_next_rank(streak),
    )
