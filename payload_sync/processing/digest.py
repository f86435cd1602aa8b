"""Content digests used by the record store to detect unchanged entries."""

import hashlib
import json
from typing import Any

from payload_sync.errors import DigestError


def canonical_json(data: Any) -> str:
    """Serialize data with sorted keys and no insignificant whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def generate_digest(data: Any) -> str:
    """
    Compute the SHA-256 digest of a parsed payload.

    Equal payloads always produce equal digests, independent of key order.

    Args:
        data: JSON-compatible payload

    Returns:
        Hex-encoded SHA-256 digest

    Raises:
        DigestError: If the payload cannot be serialized
    """
    try:
        encoded = canonical_json(data).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise DigestError(f"Failed to compute digest: {e}") from e
    return hashlib.sha256(encoded).hexdigest()
