from __future__ import annotations

import asyncio
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..data.parrot_catalog import PARROT_DEFINITIONS
from ..models import (
    Collectible,
    DrawHistoryEntry,
    OwnershipRecord,
    ProgressionState,
    StreakRecord,
    XpHistoryEntry,
)
from .protocols import ProgressionStoreProtocol


class InMemoryProgressionStore(ProgressionStoreProtocol):
    """In-memory fallback store used when MongoDB is unavailable.

    Conditional updates run under a single lock so they behave like the
    server-side atomic operations of the MongoDB store.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._progression: Dict[str, ProgressionState] = {}
        self._tickets: Dict[str, int] = {}
        self._catalog: Dict[str, Collectible] = {}
        self._ownership: Dict[Tuple[str, str], OwnershipRecord] = {}
        self._history: List[DrawHistoryEntry] = []
        self._xp_history: List[XpHistoryEntry] = []
        self._claimed_entries: Set[Tuple[str, str]] = set()
        self._streaks: Dict[str, StreakRecord] = {}

    async def ensure_indexes(self) -> None:
        """No-op for the in-memory implementation."""

    async def seed_if_empty(self, *, definitions: Iterable[dict] | None = None) -> None:
        if self._catalog:
            return

        source = definitions if definitions is not None else PARROT_DEFINITIONS
        for entry in source:
            collectible = Collectible(**entry)
            self._catalog[collectible.id] = collectible

    async def create_account(self, user_id: str, *, initial_tickets: int) -> bool:
        async with self._lock:
            if user_id in self._progression:
                return False
            self._progression[user_id] = ProgressionState(user_id=user_id)
            self._tickets.setdefault(user_id, initial_tickets)
            return True

    async def read_progression(self, user_id: str) -> Optional[ProgressionState]:
        return self._progression.get(user_id)

    async def write_progression(
        self, user_id: str, total_xp: int, level: int, *, expected_total_xp: int
    ) -> bool:
        async with self._lock:
            current = self._progression.get(user_id)
            stored_xp = current.total_xp if current is not None else 0
            if stored_xp != expected_total_xp:
                return False
            self._progression[user_id] = ProgressionState(
                user_id=user_id, total_xp=total_xp, level=level
            )
            return True

    async def claim_diary_reward(self, user_id: str, entry_id: str) -> bool:
        async with self._lock:
            key = (user_id, entry_id)
            if key in self._claimed_entries:
                return False
            self._claimed_entries.add(key)
            return True

    async def append_xp_history(self, entry: XpHistoryEntry) -> None:
        self._xp_history.append(entry)

    async def read_ticket_balance(self, user_id: str) -> int:
        return self._tickets.get(user_id, 0)

    async def atomic_spend_tickets(self, user_id: str, amount: int) -> Optional[int]:
        async with self._lock:
            current = self._tickets.get(user_id, 0)
            if current < amount:
                return None
            self._tickets[user_id] = current - amount
            return self._tickets[user_id]

    async def increment_tickets(self, user_id: str, amount: int) -> int:
        async with self._lock:
            self._tickets[user_id] = self._tickets.get(user_id, 0) + amount
            return self._tickets[user_id]

    async def list_catalog(self) -> List[Collectible]:
        return [self._catalog[key] for key in sorted(self._catalog)]

    async def read_ownership(
        self, user_id: str, collectible_ids: Sequence[str]
    ) -> Dict[str, OwnershipRecord]:
        found = {}
        for collectible_id in collectible_ids:
            record = self._ownership.get((user_id, collectible_id))
            if record is not None:
                found[collectible_id] = record
        return found

    async def list_ownership(self, user_id: str) -> List[OwnershipRecord]:
        records = [record for (owner, _), record in self._ownership.items() if owner == user_id]
        return sorted(records, key=lambda record: record.last_obtained_at, reverse=True)

    async def upsert_ownership(
        self, user_id: str, collectible_id: str, delta: int, timestamp: datetime
    ) -> None:
        async with self._lock:
            key = (user_id, collectible_id)
            existing = self._ownership.get(key)
            if existing is None:
                self._ownership[key] = OwnershipRecord(
                    user_id=user_id,
                    collectible_id=collectible_id,
                    first_obtained_at=timestamp,
                    last_obtained_at=timestamp,
                    obtain_count=delta,
                )
            else:
                self._ownership[key] = existing.model_copy(
                    update={
                        "obtain_count": existing.obtain_count + delta,
                        "last_obtained_at": timestamp,
                    }
                )

    async def revoke_ownership(
        self,
        user_id: str,
        collectible_id: str,
        delta: int,
        *,
        last_obtained_at: datetime | None = None,
    ) -> None:
        async with self._lock:
            key = (user_id, collectible_id)
            existing = self._ownership.get(key)
            if existing is None:
                return
            remaining = existing.obtain_count - delta
            if remaining <= 0:
                del self._ownership[key]
                return
            update = {"obtain_count": remaining}
            if last_obtained_at is not None:
                update["last_obtained_at"] = last_obtained_at
            self._ownership[key] = existing.model_copy(update=update)

    async def append_history(self, entry: DrawHistoryEntry) -> None:
        self._history.append(entry)

    async def delete_history(self, user_id: str, redemption_id: str) -> int:
        async with self._lock:
            kept = [
                entry
                for entry in self._history
                if not (entry.user_id == user_id and entry.redemption_id == redemption_id)
            ]
            removed = len(self._history) - len(kept)
            self._history = kept
            return removed

    async def list_history(self, user_id: str, *, limit: int = 100) -> List[DrawHistoryEntry]:
        entries = [entry for entry in self._history if entry.user_id == user_id]
        return list(reversed(entries))[:limit]

    async def list_xp_history(self, user_id: str) -> List[XpHistoryEntry]:
        return [entry for entry in self._xp_history if entry.user_id == user_id]

    async def read_streak(self, user_id: str) -> Optional[StreakRecord]:
        return self._streaks.get(user_id)

    async def write_streak(
        self, record: StreakRecord, *, expected_last_activity_day: date | None
    ) -> bool:
        async with self._lock:
            current = self._streaks.get(record.user_id)
            stored_day = current.last_activity_day if current is not None else None
            if stored_day != expected_last_activity_day:
                return False
            self._streaks[record.user_id] = record
            return True
