from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from ..models import (
    Collectible,
    DrawHistoryEntry,
    OwnershipRecord,
    ProgressionState,
    StreakRecord,
    XpHistoryEntry,
)


class ProgressionStoreProtocol(Protocol):
    """Protocol implemented by progression data stores.

    Write failures are raised as ``PersistenceFailure``.
    """

    async def ensure_indexes(self) -> None: ...

    async def seed_if_empty(self, *, definitions: Iterable[dict] | None = None) -> None: ...

    async def create_account(self, user_id: str, *, initial_tickets: int) -> bool: ...

    async def read_progression(self, user_id: str) -> Optional[ProgressionState]: ...

    async def write_progression(
        self, user_id: str, total_xp: int, level: int, *, expected_total_xp: int
    ) -> bool: ...

    async def claim_diary_reward(self, user_id: str, entry_id: str) -> bool: ...

    async def append_xp_history(self, entry: XpHistoryEntry) -> None: ...

    async def list_xp_history(self, user_id: str) -> List[XpHistoryEntry]: ...

    async def read_ticket_balance(self, user_id: str) -> int: ...

    async def atomic_spend_tickets(self, user_id: str, amount: int) -> Optional[int]: ...

    async def increment_tickets(self, user_id: str, amount: int) -> int: ...

    async def list_catalog(self) -> List[Collectible]: ...

    async def read_ownership(
        self, user_id: str, collectible_ids: Sequence[str]
    ) -> Dict[str, OwnershipRecord]: ...

    async def list_ownership(self, user_id: str) -> List[OwnershipRecord]: ...

    async def upsert_ownership(
        self, user_id: str, collectible_id: str, delta: int, timestamp: datetime
    ) -> None: ...

    async def revoke_ownership(
        self,
        user_id: str,
        collectible_id: str,
        delta: int,
        *,
        last_obtained_at: datetime | None = None,
    ) -> None: ...

    async def append_history(self, entry: DrawHistoryEntry) -> None: ...

    async def delete_history(self, user_id: str, redemption_id: str) -> int: ...

    async def list_history(self, user_id: str, *, limit: int = 100) -> List[DrawHistoryEntry]: ...

    async def read_streak(self, user_id: str) -> Optional[StreakRecord]: ...

    async def write_streak(
        self, record: StreakRecord, *, expected_last_activity_day: date | None
    ) -> bool: ...
