"""Entry points tying rewards, leveling, tickets and gacha draws together."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Sequence, TypeVar

from ..config import Settings, get_settings
from ..errors import PersistenceFailure
from ..models import (
    Collectible,
    InsufficientBalance,
    LevelInfo,
    LevelResolution,
    NoCollectiblesAvailable,
    OwnershipRecord,
    ProgressionState,
    ReconcileResult,
    RedemptionOutcome,
    RedemptionSucceeded,
    RewardNotification,
    StreakInfo,
    XpHistoryEntry,
)
from ..repositories.protocols import ProgressionStoreProtocol
from .gacha import DrawEngine
from .inventory import reconcile
from .leveling import level_info, resolve_level
from .rewards import compute_reward, count_diary_chars
from .streaks import advance_streak, streak_info
from .tickets import TicketLedger

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressionService:
    """Handles the two user triggers: a diary entry being created and a gacha redemption."""

    def __init__(
        self,
        store: ProgressionStoreProtocol,
        settings: Settings | None = None,
        *,
        ledger: TicketLedger | None = None,
        draw_engine: DrawEngine | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._ledger = ledger or TicketLedger(store)
        self._draw_engine = draw_engine or DrawEngine(weighted=self._settings.weighted_draws)
        self._clock = clock

    @property
    def ledger(self) -> TicketLedger:
        return self._ledger

    async def create_account(self, user_id: str) -> bool:
        created = await self._store.create_account(
            user_id, initial_tickets=self._settings.initial_ticket_count
        )
        if created:
            logger.info("Created progression account for user %s", user_id)
        return created

    async def get_level_info(self, user_id: str) -> LevelInfo:
        state = await self._store.read_progression(user_id)
        return level_info(state or ProgressionState(user_id=user_id))

    async def get_collection(self, user_id: str) -> List[OwnershipRecord]:
        return await self._store.list_ownership(user_id)

    # ------------------------------------------------------------------
    # Streaks
    # ------------------------------------------------------------------

    async def get_streak(self, user_id: str) -> StreakInfo:
        return streak_info(await self._store.read_streak(user_id))

    async def record_activity(self, user_id: str, now: datetime | None = None) -> StreakInfo:
        """Count today's visit towards the user's daily streak."""

        now = now or self._clock()
        offset = self._settings.streak_utc_offset_hours
        for _ in range(self._settings.progression_write_attempts):
            stored = await self._store.read_streak(user_id)
            updated = advance_streak(stored, user_id, now, offset)
            if updated is stored:
                return streak_info(stored)

            written = await self._store.write_streak(
                updated,
                expected_last_activity_day=stored.last_activity_day if stored is not None else None,
            )
            if written:
                if stored is not None and updated.streak_count == 0:
                    logger.info("Streak of user %s was reset after a missed day", user_id)
                return streak_info(updated)
            logger.debug("Streak of user %s changed concurrently; retrying", user_id)

        raise PersistenceFailure("write_streak", user_id, "concurrent updates kept conflicting")

    # ------------------------------------------------------------------
    # Diary rewards
    # ------------------------------------------------------------------

    async def on_diary_entry_created(
        self,
        user_id: str,
        entry_id: str,
        *,
        lines: Sequence[str] | None = None,
        total_chars: int | None = None,
    ) -> RewardNotification:
        """Grant XP and tickets for a newly created entry.

        Each entry is rewarded at most once; repeating the call for the same
        ``entry_id`` returns an empty notification. The ticket grant and the
        XP update are attempted independently; when one of them cannot be
        stored the notification is flagged as degraded.
        """

        if total_chars is None:
            if lines is None:
                raise ValueError("either lines or total_chars is required")
            total_chars = count_diary_chars(lines)

        reward = compute_reward(total_chars, self._settings)

        claimed = await self._with_retries(
            "claim_diary_reward", user_id, lambda: self._store.claim_diary_reward(user_id, entry_id)
        )
        if not claimed:
            logger.info("Diary entry %s of user %s was already rewarded", entry_id, user_id)
            return RewardNotification(xp=0, tickets=0, already_rewarded=True)

        degraded = False

        if reward.tickets > 0:
            try:
                await self._with_retries(
                    "grant_tickets", user_id, lambda: self._ledger.grant(user_id, reward.tickets)
                )
            except PersistenceFailure:
                logger.exception(
                    "Ticket reward of %s for user %s (entry %s) could not be stored",
                    reward.tickets,
                    user_id,
                    entry_id,
                )
                degraded = True

        resolution: LevelResolution | None = None
        if reward.xp > 0:
            try:
                resolution = await self._with_retries(
                    "record_xp", user_id, lambda: self._apply_xp(user_id, reward.xp)
                )
            except PersistenceFailure:
                logger.exception(
                    "XP reward of %s for user %s (entry %s) could not be stored", reward.xp, user_id, entry_id
                )
                degraded = True
            else:
                await self._record_xp_history(user_id, reward.xp)

        leveled_up = resolution is not None and resolution.leveled_up
        if leveled_up:
            logger.info("User %s reached level %s", user_id, resolution.level)

        return RewardNotification(
            xp=reward.xp,
            tickets=reward.tickets,
            leveled_up=leveled_up,
            new_level=resolution.level if leveled_up else None,
            degraded=degraded,
        )

    async def _apply_xp(self, user_id: str, xp: int) -> LevelResolution:
        for _ in range(self._settings.progression_write_attempts):
            state = await self._store.read_progression(user_id) or ProgressionState(user_id=user_id)
            new_total = state.total_xp + xp
            assert new_total >= state.total_xp, "total XP must never decrease"

            resolution = resolve_level(new_total, state.level)
            written = await self._store.write_progression(
                user_id, new_total, resolution.level, expected_total_xp=state.total_xp
            )
            if written:
                return resolution
            logger.debug("Progression of user %s changed concurrently; retrying", user_id)

        raise PersistenceFailure(
            "write_progression", user_id, "concurrent updates kept conflicting"
        )

    async def _record_xp_history(self, user_id: str, xp: int) -> None:
        entry = XpHistoryEntry(user_id=user_id, xp_amount=xp, earned_at=self._clock())
        try:
            await self._with_retries(
                "append_xp_history", user_id, lambda: self._store.append_xp_history(entry)
            )
        except PersistenceFailure:
            logger.exception("XP history row for user %s (%s XP) was not stored", user_id, xp)

    # ------------------------------------------------------------------
    # Gacha redemption
    # ------------------------------------------------------------------

    async def redeem_gacha(self, user_id: str, count: int) -> RedemptionOutcome:
        """Spend ``count`` tickets and draw that many collectibles.

        The catalog is checked before anything is spent. Once the spend has
        gone through, the redemption runs to its end even if the caller is
        cancelled: either every draw is stored, or the stored part is rolled
        back, the tickets are refunded and ``PersistenceFailure`` is raised.
        """

        limit = self._settings.max_draws_per_redemption
        if not 1 <= count <= limit:
            raise ValueError(f"draw count must be between 1 and {limit}, got {count}")

        catalog = await self._store.list_catalog()
        if not catalog:
            logger.error("Collectible catalog is empty; redemption of %s by user %s aborted", count, user_id)
            return NoCollectiblesAvailable()

        spend = await self._ledger.spend(user_id, count)
        if isinstance(spend, InsufficientBalance):
            return spend

        return await asyncio.shield(
            self._settle_redemption(user_id, count, catalog, spend.remaining_tickets)
        )

    async def _settle_redemption(
        self, user_id: str, count: int, catalog: List[Collectible], remaining_tickets: int
    ) -> RedemptionSucceeded:
        redemption_id = uuid.uuid4().hex
        obtained_at = self._clock()
        existing: Dict[str, OwnershipRecord] = {}
        applied: Dict[str, int] = {}
        try:
            results = self._draw_engine.draw(catalog, count)
            existing = await self._with_retries(
                "read_ownership",
                user_id,
                lambda: self._store.read_ownership(user_id, [r.collectible.id for r in results]),
            )
            reconciled = reconcile(
                user_id,
                results,
                existing,
                obtained_at=obtained_at,
                redemption_id=redemption_id,
            )
            await self._persist_redemption(user_id, reconciled, obtained_at, applied)
        except Exception:
            logger.exception(
                "Redemption %s of %s draws for user %s failed after tickets were spent; rolling back",
                redemption_id,
                count,
                user_id,
            )
            if await self._roll_back(user_id, redemption_id, applied, existing):
                await self._refund(user_id, count, redemption_id)
            raise

        logger.info(
            "Redemption %s: user %s drew %s collectibles (%s new)",
            redemption_id,
            user_id,
            count,
            len(reconciled.new_records),
        )
        return RedemptionSucceeded(
            redemption_id=redemption_id,
            results=results,
            new_collectible_ids=[record.collectible_id for record in reconciled.new_records],
            remaining_tickets=remaining_tickets,
        )

    async def _persist_redemption(
        self,
        user_id: str,
        reconciled: ReconcileResult,
        obtained_at: datetime,
        applied: Dict[str, int],
    ) -> None:
        # Completed writes move out of the pending lists so a retry never replays them.
        pending_upserts = reconciled.deltas()
        pending_history = list(reconciled.history_entries)

        attempts = self._settings.persistence_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                while pending_upserts:
                    collectible_id, delta = next(iter(pending_upserts.items()))
                    await self._store.upsert_ownership(user_id, collectible_id, delta, obtained_at)
                    applied[collectible_id] = pending_upserts.pop(collectible_id)
                while pending_history:
                    await self._store.append_history(pending_history[0])
                    pending_history.pop(0)
                return
            except PersistenceFailure as exc:
                logger.warning(
                    "Persisting draws for user %s failed (attempt %s/%s, %s ownership and %s history writes left): %s",
                    user_id,
                    attempt,
                    attempts,
                    len(pending_upserts),
                    len(pending_history),
                    exc,
                )
                if attempt == attempts:
                    raise

    async def _roll_back(
        self,
        user_id: str,
        redemption_id: str,
        applied: Dict[str, int],
        existing: Dict[str, OwnershipRecord],
    ) -> bool:
        """Undo the stored part of a failed redemption; ``False`` if that failed too."""

        try:
            await self._with_retries(
                "delete_history", user_id, lambda: self._store.delete_history(user_id, redemption_id)
            )
            while applied:
                collectible_id, delta = next(iter(applied.items()))
                previous = existing.get(collectible_id)
                await self._with_retries(
                    "revoke_ownership",
                    user_id,
                    lambda: self._store.revoke_ownership(
                        user_id,
                        collectible_id,
                        delta,
                        last_obtained_at=previous.last_obtained_at if previous is not None else None,
                    ),
                )
                del applied[collectible_id]
        except PersistenceFailure:
            logger.critical(
                "Rollback of redemption %s for user %s failed (%s ownership changes left); "
                "tickets stay spent, manual correction needed",
                redemption_id,
                user_id,
                len(applied),
            )
            return False
        return True

    async def _refund(self, user_id: str, count: int, redemption_id: str) -> None:
        try:
            await self._with_retries("refund_tickets", user_id, lambda: self._ledger.grant(user_id, count))
        except PersistenceFailure:
            logger.critical(
                "Refund of %s tickets for user %s (redemption %s) failed; manual correction needed",
                count,
                user_id,
                redemption_id,
            )

    async def _with_retries(
        self, operation: str, user_id: str, call: Callable[[], Awaitable[T]]
    ) -> T:
        attempts = self._settings.persistence_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await call()
            except PersistenceFailure as exc:
                if attempt == attempts:
                    raise
                logger.warning(
                    "%s for user %s failed (attempt %s/%s): %s", operation, user_id, attempt, attempts, exc
                )
        raise AssertionError("unreachable")
