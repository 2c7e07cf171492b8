"""Closed result types returned by the ticket ledger and gacha redemption."""

from __future__ import annotations

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field

from .collectible import DrawResult


class SpendSucceeded(BaseModel):
    status: Literal["ok"] = "ok"
    remaining_tickets: int = Field(..., ge=0)


class InsufficientBalance(BaseModel):
    """The user tried to spend more tickets than they hold."""

    status: Literal["insufficient_balance"] = "insufficient_balance"
    requested: int
    available: int

    @property
    def message(self) -> str:
        return f"Not enough tickets: need {self.requested}, have {self.available}"


class NoCollectiblesAvailable(BaseModel):
    """The catalog is empty; this is a configuration problem."""

    status: Literal["no_collectibles"] = "no_collectibles"

    @property
    def message(self) -> str:
        return "No collectibles are available to draw right now"


class RedemptionSucceeded(BaseModel):
    status: Literal["ok"] = "ok"
    redemption_id: str
    results: List[DrawResult]
    new_collectible_ids: List[str] = Field(default_factory=list)
    remaining_tickets: int = Field(..., ge=0)


SpendOutcome = Annotated[
    Union[SpendSucceeded, InsufficientBalance],
    Field(discriminator="status"),
]

RedemptionOutcome = Annotated[
    Union[RedemptionSucceeded, InsufficientBalance, NoCollectiblesAvailable],
    Field(discriminator="status"),
]
