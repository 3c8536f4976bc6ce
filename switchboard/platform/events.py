"""Telephony platform contact lifecycle events."""

from datetime import datetime

from switchboard.inference.analytics import timestamp
from switchboard.inference.orchestrator import Clock, compute_attribute_delta, utc_now
from switchboard.observability.logging import get_logger
from switchboard.platform.attributes import ContactAttributeService
from switchboard.state.store import StateStore

logger = get_logger(__name__)
analytics_logger = get_logger("switchboard.analytics")


class ContactEventHandler:
    """Handles contact events reported by the platform."""

    def __init__(
        self,
        state_store: StateStore,
        attributes: ContactAttributeService,
        clock: Clock = utc_now,
    ) -> None:
        self._store = state_store
        self._attributes = attributes
        self._clock = clock

    async def on_disconnect(self, contact_id: str) -> int:
        """Push attributes changed during the session back to the platform.

        Returns:
            Number of attributes written

        Raises:
            RetryExhaustedError: If the platform stayed unavailable
        """
        state = await self._store.load(contact_id)
        platform_attributes = await self._attributes.get_attributes(contact_id)
        delta = compute_attribute_delta(state.contact_attributes, platform_attributes)

        if delta:
            await self._attributes.update_attributes(contact_id, dict(delta))

        self._log_event(contact_id, "DISCONNECTED", self._clock(), len(delta))
        return len(delta)

    def _log_event(self, contact_id: str, event: str, now: datetime, updated: int) -> None:
        analytics_logger.info(
            "contact_event",
            contact_id=contact_id,
            event_type=event,
            when=timestamp(now),
            attributes_updated=updated,
        )
        logger.debug("contact_event_handled", contact_id=contact_id, event_type=event)
