"""Per-contact session state and its stores."""

from switchboard.state.models import ReturnFrame, SessionState, decode_value, encode_value
from switchboard.state.store import StateStore

__all__ = [
    "ReturnFrame",
    "SessionState",
    "StateStore",
    "decode_value",
    "encode_value",
]
