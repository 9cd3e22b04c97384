"""Storage tiers: the durable origin store and the regional edge cache."""

from hashpaste.storage.edge import MemoryEdgeCache
from hashpaste.storage.origin import MemoryOriginStore, SQLiteOriginStore

__all__ = ["MemoryEdgeCache", "MemoryOriginStore", "SQLiteOriginStore"]
