"""Shared storage primitives."""

from switchboard.stores.errors import ConnectionError, NotFoundError, StoreError

__all__ = ["ConnectionError", "NotFoundError", "StoreError"]
