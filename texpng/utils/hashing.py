"""Content digests used for cache keys and extracted file names."""

import hashlib
import json
from typing import Any, Mapping

CACHE_FILE_PREFIX = "latex-"


def sha256_hex(text: str) -> str:
    """Hex SHA-256 digest of a UTF-8 string."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def cache_key(text: str, fields: Mapping[str, Any]) -> str:
    """
    Derive the cache key for a render.

    The key covers the exact text handed to the toolchain (or the plain text
    used for fallback rendering) and every configuration field that affects
    the produced image. Fields are serialized as sorted JSON so the digest is
    stable across processes and independent of mapping order.

    Args:
        text: Candidate document source or normalized fallback text
        fields: Configuration fields participating in the key

    Returns:
        64-character hexadecimal digest

    Example:
        >>> cache_key("x^2", {"density": 160}) == cache_key("x^2", {"density": 160})
        True
    """
    serialized = json.dumps(dict(fields), sort_keys=True, separators=(",", ":"), default=str)
    return sha256_hex(f"{text}|{serialized}")


def cache_file_name(digest: str, extension: str = ".png") -> str:
    """File name for a digest, e.g. latex-<digest>.png."""
    return f"{CACHE_FILE_PREFIX}{digest}{extension}"
