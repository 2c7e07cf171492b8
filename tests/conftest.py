"""Shared fixtures for the progression engine test suite."""
from __future__ import annotations

import asyncio
import random
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from parrot_progress.config import Settings
from parrot_progress.errors import PersistenceFailure
from parrot_progress.models import Collectible, RarityTier
from parrot_progress.repositories import InMemoryProgressionStore, MongoProgressionStore


class FlakyStore:
    """Wraps a store and raises ``PersistenceFailure`` for selected operations.

    ``failures`` maps an operation name to how many calls should fail before
    it starts succeeding; ``-1`` fails forever.
    """

    def __init__(self, inner: Any, failures: Dict[str, int] | None = None) -> None:
        self._inner = inner
        self.failures = dict(failures or {})
        self.calls: Counter = Counter()

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._inner, name)
        if not callable(attr):
            return attr

        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            self.calls[name] += 1
            remaining = self.failures.get(name, 0)
            if remaining:
                if remaining > 0:
                    self.failures[name] = remaining - 1
                raise PersistenceFailure(name, detail="injected failure")
            return await attr(*args, **kwargs)

        return wrapper


class YieldingStore(InMemoryProgressionStore):
    """In-memory store that yields to the event loop on reads, so concurrent callers interleave."""

    async def read_progression(self, user_id):
        await asyncio.sleep(0)
        return await super().read_progression(user_id)

    async def read_ticket_balance(self, user_id):
        await asyncio.sleep(0)
        return await super().read_ticket_balance(user_id)

    async def read_streak(self, user_id):
        await asyncio.sleep(0)
        return await super().read_streak(user_id)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(20240401)


@pytest.fixture
def small_catalog() -> List[Collectible]:
    return [
        Collectible(id="parrot", name="Parrot", rarity_tier=RarityTier.NORMAL, display_weight=0.6),
        Collectible(id="party-parrot", name="Party Parrot", rarity_tier=RarityTier.RARE, display_weight=0.25),
        Collectible(id="fast-parrot", name="Fast Parrot", rarity_tier=RarityTier.SUPER_RARE, display_weight=0.12),
        Collectible(
            id="ultra-fast-parrot",
            name="Ultra Fast Parrot",
            rarity_tier=RarityTier.ULTRA_RARE,
            display_weight=0.03,
        ),
    ]


@pytest_asyncio.fixture
async def store(small_catalog) -> InMemoryProgressionStore:
    memory_store = InMemoryProgressionStore()
    await memory_store.seed_if_empty(definitions=[item.model_dump() for item in small_catalog])
    return memory_store


@pytest_asyncio.fixture
async def empty_catalog_store() -> InMemoryProgressionStore:
    memory_store = InMemoryProgressionStore()
    await memory_store.seed_if_empty(definitions=[])
    return memory_store


@pytest_asyncio.fixture(params=["memory", "mongo"])
async def backend_store(request, small_catalog):
    """The sample catalog loaded into each store implementation in turn."""

    if request.param == "memory":
        backend = InMemoryProgressionStore()
    else:
        client = AsyncMongoMockClient(tz_aware=True)
        backend = MongoProgressionStore(client["parrot_progress_test"], Settings())
    await backend.ensure_indexes()
    await backend.seed_if_empty(definitions=[item.model_dump(mode="json") for item in small_catalog])
    return backend


class GatedStore(InMemoryProgressionStore):
    """In-memory store whose ownership writes wait until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def upsert_ownership(self, *args, **kwargs):
        self.entered.set()
        await self.release.wait()
        await super().upsert_ownership(*args, **kwargs)


def as_utc(moment: datetime) -> datetime:
    """Normalise a timestamp read back from either store for comparison."""

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
