from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator

from .services.rewards import MAX_DIARY_LINES


class DiaryEntryCreated(BaseModel):
    """Identifier and lines of a newly created diary entry."""

    entry_id: str = Field(..., min_length=1, max_length=128)
    lines: List[str] = Field(..., min_length=1, max_length=MAX_DIARY_LINES)

    @field_validator("lines")
    @classmethod
    def _no_gaps(cls, lines: List[str]) -> List[str]:
        # A line only counts when every line before it has text.
        stripped = [line.strip() for line in lines]
        for earlier, later in zip(stripped, stripped[1:]):
            if not earlier and later:
                raise ValueError("diary lines must be filled in order")
        return lines


class RedeemRequest(BaseModel):
    count: int = Field(..., ge=1)


class AccountResponse(BaseModel):
    user_id: str
    created: bool
