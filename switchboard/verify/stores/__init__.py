"""Test and batch store implementations."""

from switchboard.verify.stores.inmemory import InMemoryBatchStore, InMemoryTestStore
from switchboard.verify.stores.redis import RedisBatchStore, RedisTestStore

__all__ = [
    "InMemoryBatchStore",
    "InMemoryTestStore",
    "RedisBatchStore",
    "RedisTestStore",
]
