"""Redis implementation of RuleConfigStore.

Key structure:
- {prefix}:rulesets - hash of rule set id to rule set JSON
- {prefix}:endpoints - hash of endpoint name to endpoint JSON
- {prefix}:config - hash of config key to JSON value
- {prefix}:lastchange - last change token
"""

import json
from datetime import UTC, datetime
from typing import Any

import redis.asyncio as redis

from switchboard.config.models.storage import RuleStoreConfig
from switchboard.observability.logging import get_logger
from switchboard.rules.models import EndPoint, RuleSet
from switchboard.rules.store import RuleConfigStore
from switchboard.stores.errors import ConnectionError

logger = get_logger(__name__)


class RedisRuleConfigStore(RuleConfigStore):
    """Redis backed rule configuration."""

    def __init__(
        self,
        client: redis.Redis,
        config: RuleStoreConfig | None = None,
    ) -> None:
        """Initialize Redis rule configuration store.

        Args:
            client: Redis client instance
            config: Rule store configuration (uses defaults if not provided)
        """
        self._client = client
        self._config = config or RuleStoreConfig()
        self._prefix = self._config.key_prefix

    def _key(self, name: str) -> str:
        return f"{self._prefix}:{name}"

    async def get_rule_sets(self) -> list[RuleSet]:
        try:
            raw = await self._client.hgetall(self._key("rulesets"))
        except redis.RedisError as e:
            logger.error("redis_get_rule_sets_error", error=str(e))
            raise ConnectionError(f"Failed to load rule sets: {e}", cause=e) from e
        return [RuleSet.model_validate_json(value) for value in raw.values()]

    async def get_end_points(self) -> list[EndPoint]:
        try:
            raw = await self._client.hgetall(self._key("endpoints"))
        except redis.RedisError as e:
            logger.error("redis_get_end_points_error", error=str(e))
            raise ConnectionError(f"Failed to load end points: {e}", cause=e) from e
        return [EndPoint.model_validate_json(value) for value in raw.values()]

    async def get_config_items(self) -> dict[str, Any]:
        try:
            raw = await self._client.hgetall(self._key("config"))
        except redis.RedisError as e:
            logger.error("redis_get_config_error", error=str(e))
            raise ConnectionError(f"Failed to load config items: {e}", cause=e) from e
        return {_text(key): json.loads(value) for key, value in raw.items()}

    async def get_last_change(self) -> str | None:
        try:
            value = await self._client.get(self._key("lastchange"))
        except redis.RedisError as e:
            logger.error("redis_get_last_change_error", error=str(e))
            raise ConnectionError(f"Failed to load last change: {e}", cause=e) from e
        return None if value is None else _text(value)

    async def save_rule_set(self, rule_set: RuleSet) -> None:
        """Insert or replace a rule set and move the last change token."""
        await self._write("rulesets", rule_set.rule_set_id, rule_set.model_dump_json())

    async def save_end_point(self, end_point: EndPoint) -> None:
        """Insert or replace an endpoint and move the last change token."""
        await self._write("endpoints", end_point.name, end_point.model_dump_json())

    async def set_config_item(self, key: str, value: Any) -> None:
        """Set a configuration item and move the last change token."""
        await self._write("config", key, json.dumps(value))

    async def _write(self, collection: str, field: str, value: str) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.hset(self._key(collection), field, value)
                pipe.set(self._key("lastchange"), datetime.now(UTC).isoformat())
                await pipe.execute()
        except redis.RedisError as e:
            logger.error("redis_rule_config_write_error", collection=collection, error=str(e))
            raise ConnectionError(f"Failed to write {collection}: {e}", cause=e) from e


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value
