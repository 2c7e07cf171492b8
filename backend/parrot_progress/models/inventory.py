from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class OwnershipRecord(BaseModel):
    """How many times a user has obtained a given collectible."""

    user_id: str
    collectible_id: str
    first_obtained_at: datetime
    last_obtained_at: datetime
    obtain_count: int = Field(default=1, ge=1)

    @classmethod
    def from_mongo(cls, document: Dict[str, Any]) -> "OwnershipRecord":
        """Convert a MongoDB document to an ownership model."""

        payload = dict(document)
        payload.pop("_id", None)
        return cls(**payload)


class DrawHistoryEntry(BaseModel):
    """Append-only audit row, one per individual draw."""

    user_id: str
    collectible_id: str
    drawn_at: datetime
    redemption_id: str | None = None

    @classmethod
    def from_mongo(cls, document: Dict[str, Any]) -> "DrawHistoryEntry":
        payload = dict(document)
        payload.pop("_id", None)
        return cls(**payload)


class ReconcileResult(BaseModel):
    """Ownership changes produced by a batch of draws."""

    new_records: List[OwnershipRecord] = Field(default_factory=list)
    updated_records: List[OwnershipRecord] = Field(default_factory=list)
    history_entries: List[DrawHistoryEntry] = Field(default_factory=list)

    def deltas(self) -> Dict[str, int]:
        """Return how many times each collectible was drawn, in first-drawn order."""

        return dict(Counter(entry.collectible_id for entry in self.history_entries))
