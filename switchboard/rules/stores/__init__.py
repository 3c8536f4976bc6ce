"""Rule configuration store implementations."""

from switchboard.rules.stores.inmemory import InMemoryRuleConfigStore
from switchboard.rules.stores.redis import RedisRuleConfigStore

__all__ = ["InMemoryRuleConfigStore", "RedisRuleConfigStore"]
