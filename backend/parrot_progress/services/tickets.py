from __future__ import annotations

import logging

from ..models import InsufficientBalance, SpendOutcome, SpendSucceeded
from ..repositories.protocols import ProgressionStoreProtocol

logger = logging.getLogger(__name__)


class TicketLedger:
    """Guards a user's ticket balance.

    Spending is a single conditional decrement in the store, so two concurrent
    redemptions can never both succeed against a balance that only covers one.
    """

    def __init__(self, store: ProgressionStoreProtocol) -> None:
        self._store = store

    async def balance(self, user_id: str) -> int:
        return await self._store.read_ticket_balance(user_id)

    async def spend(self, user_id: str, amount: int) -> SpendOutcome:
        if amount < 1:
            raise ValueError(f"spend amount must be >= 1, got {amount}")

        remaining = await self._store.atomic_spend_tickets(user_id, amount)
        if remaining is None:
            available = await self._store.read_ticket_balance(user_id)
            logger.info(
                "Ticket spend rejected for user %s: requested %s, available %s",
                user_id,
                amount,
                available,
            )
            return InsufficientBalance(requested=amount, available=available)

        assert remaining >= 0, f"ticket balance for {user_id} went negative ({remaining})"
        logger.info("User %s spent %s tickets, %s left", user_id, amount, remaining)
        return SpendSucceeded(remaining_tickets=remaining)

    async def grant(self, user_id: str, amount: int) -> int:
        """Add ``amount`` tickets and return the new balance."""

        if amount < 0:
            raise ValueError(f"grant amount must be >= 0, got {amount}")

        balance = await self._store.increment_tickets(user_id, amount)
        logger.info("Granted %s tickets to user %s, balance now %s", amount, user_id, balance)
        return balance
