"""Contact attribute access on the telephony platform."""

import asyncio
import random
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from switchboard.config.models.inference import PlatformConfig
from switchboard.platform.backoff import Sleeper, with_backoff


class ContactAttributeService(ABC):
    """Reads and writes the attributes the platform holds for a contact."""

    @abstractmethod
    async def get_attributes(self, contact_id: str) -> dict[str, Any]:
        """Get all attributes for a contact.

        Raises:
            PlatformError: If the platform call failed
        """
        pass

    @abstractmethod
    async def update_attributes(self, contact_id: str, attributes: Mapping[str, Any]) -> None:
        """Merge attributes into the contact's platform attributes.

        Raises:
            PlatformError: If the platform call failed
        """
        pass


class InMemoryContactAttributeService(ContactAttributeService):
    """In-memory platform attributes for testing and local runs."""

    def __init__(self) -> None:
        self._attributes: dict[str, dict[str, Any]] = {}

    async def get_attributes(self, contact_id: str) -> dict[str, Any]:
        return dict(self._attributes.get(contact_id, {}))

    async def update_attributes(self, contact_id: str, attributes: Mapping[str, Any]) -> None:
        self._attributes.setdefault(contact_id, {}).update(attributes)


class RetryingContactAttributeService(ContactAttributeService):
    """Wraps another service, retrying transient failures with backoff."""

    def __init__(
        self,
        inner: ContactAttributeService,
        config: PlatformConfig | None = None,
        rng: random.Random | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._inner = inner
        self._config = config or PlatformConfig()
        self._rng = rng
        self._sleep = sleep

    async def get_attributes(self, contact_id: str) -> dict[str, Any]:
        return await with_backoff(
            "get_attributes",
            lambda: self._inner.get_attributes(contact_id),
            self._config,
            rng=self._rng,
            sleep=self._sleep,
        )

    async def update_attributes(self, contact_id: str, attributes: Mapping[str, Any]) -> None:
        await with_backoff(
            "update_attributes",
            lambda: self._inner.update_attributes(contact_id, attributes),
            self._config,
            rng=self._rng,
            sleep=self._sleep,
        )
