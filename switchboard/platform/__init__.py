"""Telephony platform collaborators.

Attribute reads and writes against the platform are treated as
transient failures and retried with jittered exponential backoff.
"""

from switchboard.platform.attributes import (
    ContactAttributeService,
    InMemoryContactAttributeService,
    RetryingContactAttributeService,
)
from switchboard.platform.errors import PlatformError, RetryExhaustedError
from switchboard.platform.events import ContactEventHandler

__all__ = [
    "ContactAttributeService",
    "ContactEventHandler",
    "InMemoryContactAttributeService",
    "PlatformError",
    "RetryExhaustedError",
    "RetryingContactAttributeService",
]
