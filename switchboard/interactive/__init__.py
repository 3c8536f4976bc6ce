"""Interactive simulation of the telephony platform."""

from switchboard.interactive.handlers import SimulatedRuleHandlers
from switchboard.interactive.models import (
    InteractiveEvent,
    InteractiveRequest,
    InteractiveResponse,
)
from switchboard.interactive.simulator import InteractiveSimulator

__all__ = [
    "InteractiveEvent",
    "InteractiveRequest",
    "InteractiveResponse",
    "InteractiveSimulator",
    "SimulatedRuleHandlers",
]
