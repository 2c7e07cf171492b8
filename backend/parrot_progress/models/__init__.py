"""Pydantic models shared by the services, stores and HTTP layer."""

from .collectible import Collectible, DrawResult, RarityTier
from .inventory import DrawHistoryEntry, OwnershipRecord, ReconcileResult
from .outcomes import (
    InsufficientBalance,
    NoCollectiblesAvailable,
    RedemptionOutcome,
    RedemptionSucceeded,
    SpendOutcome,
    SpendSucceeded,
)
from .progression import (
    LevelInfo,
    LevelResolution,
    ProgressionState,
    Reward,
    RewardNotification,
    TicketBalance,
    XpHistoryEntry,
)
from .streak import StreakInfo, StreakRank, StreakRecord

__all__ = [
    "Collectible",
    "DrawHistoryEntry",
    "DrawResult",
    "InsufficientBalance",
    "LevelInfo",
    "LevelResolution",
    "NoCollectiblesAvailable",
    "OwnershipRecord",
    "ProgressionState",
    "RarityTier",
    "ReconcileResult",
    "RedemptionOutcome",
    "RedemptionSucceeded",
    "Reward",
    "RewardNotification",
    "SpendOutcome",
    "SpendSucceeded",
    "StreakInfo",
    "StreakRank",
    "StreakRecord",
    "TicketBalance",
    "XpHistoryEntry",
]
