from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field


class ProgressionState(BaseModel):
    """Stored XP total and cached level of a single user."""

    user_id: str
    total_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)

    @classmethod
    def from_mongo(cls, document: Dict[str, Any]) -> "ProgressionState":
        """Convert a MongoDB document to a progression model."""

        payload = dict(document)
        payload.pop("_id", None)
        return cls(**payload)


class TicketBalance(BaseModel):
    """Number of gacha tickets a user can spend."""

    user_id: str
    ticket_count: int = Field(default=0, ge=0)


class LevelResolution(BaseModel):
    """Result of walking the leveling curve from a starting level."""

    level: int = Field(..., ge=1)
    current_level_xp: int = Field(..., ge=0)
    next_level_required_xp: int
    leveled_up: bool = False


class LevelInfo(BaseModel):
    """Dashboard view of a user's stored progression."""

    level: int
    total_xp: int
    current_level_xp: int
    next_level_required_xp: int


class Reward(BaseModel):
    """XP and tickets earned by a newly created diary entry."""

    xp: int = Field(default=0, ge=0)
    tickets: int = Field(default=0, ge=0)


class RewardNotification(BaseModel):
    """Payload shown to the user after a diary entry has been saved."""

    xp: int
    tickets: int
    leveled_up: bool = False
    new_level: int | None = None
    already_rewarded: bool = Field(
        default=False,
        description="True when this entry had already earned its reward",
    )
    degraded: bool = Field(
        default=False,
        description="True when part of the reward could not be stored",
    )


class XpHistoryEntry(BaseModel):
    """Audit row written for every XP grant."""

    user_id: str
    xp_amount: int = Field(..., ge=0)
    action_type: str = "diary_entry"
    earned_at: datetime
