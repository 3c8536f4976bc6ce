"""Compressed encoding of batch results: JSON, then gzip, then base64."""

import base64
import gzip
import json
from typing import Any


def compress(value: Any) -> bytes:
    """JSON encode and gzip a value."""
    return gzip.compress(json.dumps(value).encode("utf-8"))


def decompress(data: bytes) -> Any:
    return json.loads(gzip.decompress(data).decode("utf-8"))


def encode_payload(value: Any) -> str:
    """JSON encode, gzip and base64 encode a value."""
    return base64.b64encode(compress(value)).decode("ascii")


def decode_payload(encoded: str) -> Any:
    """Reverse encode_payload."""
    return decompress(base64.b64decode(encoded))
