"""Stores responsible for progression and collection persistence."""

from .in_memory import InMemoryProgressionStore
from .mongo import MongoProgressionStore
from .protocols import ProgressionStoreProtocol

__all__ = [
    "InMemoryProgressionStore",
    "MongoProgressionStore",
    "ProgressionStoreProtocol",
]
