"""State store implementations."""

from switchboard.state.stores.inmemory import InMemoryStateStore
from switchboard.state.stores.redis import RedisStateStore

__all__ = ["InMemoryStateStore", "RedisStateStore"]
