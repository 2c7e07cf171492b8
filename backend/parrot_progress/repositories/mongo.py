from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import Settings, get_settings
from ..data.parrot_catalog import PARROT_DEFINITIONS
from ..errors import PersistenceFailure
from ..models import (
    Collectible,
    DrawHistoryEntry,
    OwnershipRecord,
    ProgressionState,
    StreakRecord,
    XpHistoryEntry,
)


@contextmanager
def _store_errors(operation: str, user_id: str | None = None) -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        raise PersistenceFailure(operation, user_id, str(exc)) from exc


class MongoProgressionStore:
    """Data-access layer for progression, tickets, catalog and collection documents.

    Every mutation that can race is a single server-side update: ticket spends
    carry a ``ticket_count >= amount`` guard, ownership uses ``$inc`` upserts
    and progression writes compare the previously read ``total_xp``.
    """

    def __init__(self, database: AsyncIOMotorDatabase, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._progression = database[settings.progression_collection]
        self._tickets = database[settings.ticket_collection]
        self._catalog = database[settings.catalog_collection]
        self._ownership = database[settings.ownership_collection]
        self._history = database[settings.history_collection]
        self._xp_history = database[settings.xp_history_collection]
        self._diary_rewards = database[settings.diary_reward_collection]
        self._streaks = database[settings.streak_collection]

    async def ensure_indexes(self) -> None:
        """Create indexes required by the collections."""

        with _store_errors("ensure_indexes"):
            await self._progression.create_index("user_id", unique=True, name="progression_user_idx")
            await self._tickets.create_index("user_id", unique=True, name="tickets_user_idx")
            await self._ownership.create_index(
                [("user_id", ASCENDING), ("collectible_id", ASCENDING)],
                unique=True,
                name="ownership_user_collectible_idx",
            )
            await self._history.create_index(
                [("user_id", ASCENDING), ("drawn_at", DESCENDING)], name="history_user_drawn_idx"
            )
            await self._xp_history.create_index(
                [("user_id", ASCENDING), ("earned_at", DESCENDING)], name="xp_history_user_idx"
            )
            await self._history.create_index("redemption_id", name="history_redemption_idx")
            await self._diary_rewards.create_index(
                [("user_id", ASCENDING), ("entry_id", ASCENDING)],
                unique=True,
                name="diary_reward_entry_idx",
            )
            await self._streaks.create_index("user_id", unique=True, name="streak_user_idx")

    async def seed_if_empty(self, *, definitions: Iterable[dict] | None = None) -> None:
        """Insert bundled parrot definitions if the catalog is empty."""

        with _store_errors("seed_if_empty"):
            if await self._catalog.estimated_document_count() > 0:
                return

            docs = []
            source = definitions if definitions is not None else PARROT_DEFINITIONS
            for entry in source:
                doc = dict(entry)
                doc["_id"] = doc.pop("id")
                docs.append(doc)

            if docs:
                await self._catalog.insert_many(docs)

    async def create_account(self, user_id: str, *, initial_tickets: int) -> bool:
        """Create the progression and ticket documents if they do not exist yet."""

        now = datetime.now(timezone.utc)
        with _store_errors("create_account", user_id):
            result = await self._progression.update_one(
                {"user_id": user_id},
                {"$setOnInsert": {"user_id": user_id, "total_xp": 0, "level": 1, "updated_at": now}},
                upsert=True,
            )
            await self._tickets.update_one(
                {"user_id": user_id},
                {"$setOnInsert": {"user_id": user_id, "ticket_count": initial_tickets, "last_updated": now}},
                upsert=True,
            )
        return result.upserted_id is not None

    async def read_progression(self, user_id: str) -> Optional[ProgressionState]:
        with _store_errors("read_progression", user_id):
            document = await self._progression.find_one(
                {"user_id": user_id}, {"_id": 0, "user_id": 1, "total_xp": 1, "level": 1}
            )
        if document is None:
            return None
        return ProgressionState.from_mongo(document)

    async def write_progression(
        self, user_id: str, total_xp: int, level: int, *, expected_total_xp: int
    ) -> bool:
        """Store a new XP total and level if nobody changed ``total_xp`` meanwhile."""

        with _store_errors("write_progression", user_id):
            try:
                result = await self._progression.update_one(
                    {"user_id": user_id, "total_xp": expected_total_xp},
                    {
                        "$set": {
                            "total_xp": total_xp,
                            "level": level,
                            "updated_at": datetime.now(timezone.utc),
                        }
                    },
                    upsert=expected_total_xp == 0,
                )
            except DuplicateKeyError:
                # The upsert lost against an existing document with a different total.
                return False
        return result.matched_count == 1 or result.upserted_id is not None

    async def claim_diary_reward(self, user_id: str, entry_id: str) -> bool:
        """Mark ``entry_id`` as rewarded; ``False`` if it already was."""

        with _store_errors("claim_diary_reward", user_id):
            try:
                await self._diary_rewards.insert_one(
                    {"user_id": user_id, "entry_id": entry_id, "claimed_at": datetime.now(timezone.utc)}
                )
            except DuplicateKeyError:
                return False
        return True

    async def append_xp_history(self, entry: XpHistoryEntry) -> None:
        with _store_errors("append_xp_history", entry.user_id):
            await self._xp_history.insert_one(entry.model_dump())

    async def list_xp_history(self, user_id: str) -> List[XpHistoryEntry]:
        with _store_errors("list_xp_history", user_id):
            cursor = self._xp_history.find({"user_id": user_id}, {"_id": 0}).sort("earned_at", ASCENDING)
            return [XpHistoryEntry(**doc) async for doc in cursor]

    async def read_ticket_balance(self, user_id: str) -> int:
        with _store_errors("read_ticket_balance", user_id):
            document = await self._tickets.find_one({"user_id": user_id})
        if document is None:
            return 0
        return int(document.get("ticket_count", 0))

    async def atomic_spend_tickets(self, user_id: str, amount: int) -> Optional[int]:
        """Decrement the balance only if it covers ``amount``; ``None`` otherwise."""

        with _store_errors("atomic_spend_tickets", user_id):
            document = await self._tickets.find_one_and_update(
                {"user_id": user_id, "ticket_count": {"$gte": amount}},
                {
                    "$inc": {"ticket_count": -amount},
                    "$set": {"last_updated": datetime.now(timezone.utc)},
                },
                return_document=ReturnDocument.AFTER,
            )
        if document is None:
            return None
        return int(document["ticket_count"])

    async def increment_tickets(self, user_id: str, amount: int) -> int:
        with _store_errors("increment_tickets", user_id):
            document = await self._tickets.find_one_and_update(
                {"user_id": user_id},
                {
                    "$inc": {"ticket_count": amount},
                    "$set": {"last_updated": datetime.now(timezone.utc)},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return int(document["ticket_count"])

    async def list_catalog(self) -> List[Collectible]:
        """Return all collectibles sorted by identifier."""

        with _store_errors("list_catalog"):
            cursor = self._catalog.find().sort("_id", ASCENDING)
            return [Collectible.from_mongo(doc) async for doc in cursor]

    async def read_ownership(
        self, user_id: str, collectible_ids: Sequence[str]
    ) -> Dict[str, OwnershipRecord]:
        with _store_errors("read_ownership", user_id):
            cursor = self._ownership.find(
                {"user_id": user_id, "collectible_id": {"$in": list(set(collectible_ids))}}
            )
            records = [OwnershipRecord.from_mongo(doc) async for doc in cursor]
        return {record.collectible_id: record for record in records}

    async def list_ownership(self, user_id: str) -> List[OwnershipRecord]:
        with _store_errors("list_ownership", user_id):
            cursor = self._ownership.find({"user_id": user_id}).sort("last_obtained_at", DESCENDING)
            return [OwnershipRecord.from_mongo(doc) async for doc in cursor]

    async def upsert_ownership(
        self, user_id: str, collectible_id: str, delta: int, timestamp: datetime
    ) -> None:
        """Insert the ownership document or add ``delta`` to its obtain count."""

        with _store_errors("upsert_ownership", user_id):
            await self._ownership.update_one(
                {"user_id": user_id, "collectible_id": collectible_id},
                {
                    "$inc": {"obtain_count": delta},
                    "$set": {"last_obtained_at": timestamp},
                    "$setOnInsert": {"first_obtained_at": timestamp},
                },
                upsert=True,
            )

    async def revoke_ownership(
        self,
        user_id: str,
        collectible_id: str,
        delta: int,
        *,
        last_obtained_at: datetime | None = None,
    ) -> None:
        """Take back ``delta`` obtains, removing the document once none are left."""

        update: dict = {"$inc": {"obtain_count": -delta}}
        if last_obtained_at is not None:
            update["$set"] = {"last_obtained_at": last_obtained_at}

        with _store_errors("revoke_ownership", user_id):
            document = await self._ownership.find_one_and_update(
                {"user_id": user_id, "collectible_id": collectible_id},
                update,
                return_document=ReturnDocument.AFTER,
            )
            if document is not None and document["obtain_count"] <= 0:
                await self._ownership.delete_one(
                    {"user_id": user_id, "collectible_id": collectible_id, "obtain_count": {"$lte": 0}}
                )

    async def append_history(self, entry: DrawHistoryEntry) -> None:
        with _store_errors("append_history", entry.user_id):
            await self._history.insert_one(entry.model_dump())

    async def delete_history(self, user_id: str, redemption_id: str) -> int:
        with _store_errors("delete_history", user_id):
            result = await self._history.delete_many({"user_id": user_id, "redemption_id": redemption_id})
        return result.deleted_count

    async def list_history(self, user_id: str, *, limit: int = 100) -> List[DrawHistoryEntry]:
        with _store_errors("list_history", user_id):
            cursor = self._history.find({"user_id": user_id}).sort("drawn_at", DESCENDING).limit(limit)
            return [DrawHistoryEntry.from_mongo(doc) async for doc in cursor]

    async def read_streak(self, user_id: str) -> Optional[StreakRecord]:
        with _store_errors("read_streak", user_id):
            document = await self._streaks.find_one({"user_id": user_id}, {"_id": 0})
        if document is None:
            return None
        return StreakRecord.from_mongo(document)

    async def write_streak(
        self, record: StreakRecord, *, expected_last_activity_day: date | None
    ) -> bool:
        """Store ``record`` if the stored streak still ends on ``expected_last_activity_day``."""

        # BSON has no date type; days are stored as ISO strings.
        document = record.model_dump()
        document["last_activity_day"] = record.last_activity_day.isoformat()

        with _store_errors("write_streak", record.user_id):
            if expected_last_activity_day is None:
                try:
                    await self._streaks.insert_one(document)
                except DuplicateKeyError:
                    return False
                return True

            result = await self._streaks.update_one(
                {
                    "user_id": record.user_id,
                    "last_activity_day": expected_last_activity_day.isoformat(),
                },
                {"$set": document},
            )
        return result.matched_count == 1
