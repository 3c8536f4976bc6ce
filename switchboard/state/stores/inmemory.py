"""In-memory implementation of StateStore."""

import time

from switchboard.state.models import SessionState
from switchboard.state.store import StateStore


class InMemoryStateStore(StateStore):
    """In-memory state store for testing and development.

    Values are held in their encoded string form so reads go through the
    same decoding as a real backend.
    """

    def __init__(self, ttl_seconds: int = 14400) -> None:
        self._ttl_seconds = ttl_seconds
        self._items: dict[str, dict[str, str]] = {}
        self._expiry: dict[str, float] = {}

    async def load(self, contact_id: str) -> SessionState:
        expiry = self._expiry.get(contact_id)
        if expiry is not None and expiry < time.monotonic():
            self._items.pop(contact_id, None)
            self._expiry.pop(contact_id, None)
        return SessionState.from_persisted(contact_id, self._items.get(contact_id, {}))

    async def persist(self, state: SessionState) -> None:
        changes = state.changes()
        if changes:
            items = self._items.setdefault(state.contact_id, {})
            for key, value in changes.items():
                if value is None:
                    items.pop(key, None)
                else:
                    items[key] = value
            self._expiry[state.contact_id] = time.monotonic() + self._ttl_seconds
        state.mark_clean()

    def raw(self, contact_id: str) -> dict[str, str]:
        """Persisted string values for a contact."""
        return dict(self._items.get(contact_id, {}))
