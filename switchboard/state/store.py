"""StateStore abstract interface."""

from abc import ABC, abstractmethod

from switchboard.state.models import SessionState


class StateStore(ABC):
    """Abstract interface for session state storage.

    State is a flat map of string values per contact, expiring after a
    fixed time to live. Stores only ever write the dirty delta.
    """

    @abstractmethod
    async def load(self, contact_id: str) -> SessionState:
        """Load state for a contact, empty when none exists."""
        pass

    @abstractmethod
    async def persist(self, state: SessionState) -> None:
        """Write dirty keys, deleting those whose value is empty, then mark clean."""
        pass
