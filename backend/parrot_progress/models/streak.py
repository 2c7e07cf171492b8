from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class StreakRank(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class StreakRecord(BaseModel):
    """Consecutive activity days of a single user."""

    user_id: str
    streak_count: int = Field(default=0, ge=0)
    max_streak: int = Field(default=0, ge=0)
    last_activity_day: date
    last_activity_at: datetime

    @classmethod
    def from_mongo(cls, document: Dict[str, Any]) -> "StreakRecord":
        payload = dict(document)
        payload.pop("_id", None)
        return cls(**payload)


class StreakInfo(BaseModel):
    """Dashboard view of a user's streak and the rank it earns."""

    streak_count: int
    max_streak: int
    rank: StreakRank
    days_to_next_rank: int | None = None
