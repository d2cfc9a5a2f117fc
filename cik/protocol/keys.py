"""
Key and Tag Normalization

Keys and tags travel with a one-byte length prefix, so anything longer
than 255 bytes is replaced by the hex SHA-256 digest of its bytes
(64 ASCII characters). The mapping is deterministic; collisions between
two oversized inputs are not detected.
"""

import hashlib
from typing import Iterable, List, Union

from .commands import MAX_KEY_LENGTH, MAX_TAG_COUNT

BytesLike = Union[bytes, bytearray, memoryview, str]


def to_bytes(data: BytesLike) -> bytes:
    """Convert str (UTF-8) or any bytes-like object to bytes."""
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"expected str or bytes, got {type(data).__name__}")


def normalize_key(key: BytesLike) -> bytes:
    """
    Bound a key or tag to a protocol-legal length.

    Args:
        key: The key or tag (str is encoded as UTF-8)

    Returns:
        The key bytes unchanged if they fit in 255 bytes, otherwise
        the hex-encoded SHA-256 digest of them.

    Examples:
        >>> normalize_key("min nyckel")
        b'min nyckel'
        >>> len(normalize_key("x" * 300))
        64
    """
    raw = to_bytes(key)
    if len(raw) <= MAX_KEY_LENGTH:
        return raw
    return hashlib.sha256(raw).hexdigest().encode("ascii")


def prepare_tags(tags: Iterable[BytesLike]) -> List[bytes]:
    """
    Turn a caller supplied tag list into the list that goes on the wire.

    Empty tags are dropped, each tag is normalized, duplicates are removed
    keeping the first occurrence, and the result is cut to 255 entries.
    """
    if not tags:
        return []
    if isinstance(tags, (str, bytes, bytearray)):
        tags = [tags]

    seen = set()
    prepared: List[bytes] = []
    for tag in tags:
        if not tag:
            continue
        tag = normalize_key(tag)
        if tag in seen:
            continue
        seen.add(tag)
        prepared.append(tag)
        if len(prepared) == MAX_TAG_COUNT:
            break
    return prepared
