"""Redis implementation of StateStore.

Each contact's state is one hash at {prefix}:{contact_id}. Every write
refreshes the hash expiry.
"""

import redis.asyncio as redis

from switchboard.config.models.storage import StateStoreConfig
from switchboard.observability.logging import get_logger
from switchboard.state.models import SessionState
from switchboard.state.store import StateStore
from switchboard.stores.errors import ConnectionError

logger = get_logger(__name__)


class RedisStateStore(StateStore):
    """Redis backed session state."""

    def __init__(
        self,
        client: redis.Redis,
        config: StateStoreConfig | None = None,
    ) -> None:
        """Initialize Redis state store.

        Args:
            client: Redis client instance
            config: State store configuration (uses defaults if not provided)
        """
        self._client = client
        self._config = config or StateStoreConfig()
        self._prefix = self._config.key_prefix

    def _key(self, contact_id: str) -> str:
        return f"{self._prefix}:{contact_id}"

    async def load(self, contact_id: str) -> SessionState:
        try:
            raw = await self._client.hgetall(self._key(contact_id))
        except redis.RedisError as e:
            logger.error("redis_state_load_error", contact_id=contact_id, error=str(e))
            raise ConnectionError(f"Failed to load state: {e}", cause=e) from e

        return SessionState.from_persisted(
            contact_id,
            {_text(key): _text(value) for key, value in raw.items()},
        )

    async def persist(self, state: SessionState) -> None:
        changes = state.changes()
        if not changes:
            return

        puts = {key: value for key, value in changes.items() if value is not None}
        deletes = [key for key, value in changes.items() if value is None]
        key = self._key(state.contact_id)

        try:
            async with self._client.pipeline(transaction=True) as pipe:
                if puts:
                    pipe.hset(key, mapping=puts)
                if deletes:
                    pipe.hdel(key, *deletes)
                pipe.expire(key, self._config.ttl_seconds)
                await pipe.execute()
        except redis.RedisError as e:
            logger.error(
                "redis_state_persist_error",
                contact_id=state.contact_id,
                error=str(e),
            )
            raise ConnectionError(f"Failed to persist state: {e}", cause=e) from e

        logger.debug(
            "state_persisted",
            contact_id=state.contact_id,
            written=len(puts),
            deleted=len(deletes),
        )
        state.mark_clean()


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value
