"""
Shared utilities for texpng.

Common functionality used across contexts:
- Content digests and cache file naming
- Scratch-file lifecycle
- Logger configuration
"""

from texpng.utils.filesystem import ScratchFiles, is_nonempty_file
from texpng.utils.hashing import cache_file_name, cache_key, sha256_hex

__all__ = ["ScratchFiles", "cache_file_name", "cache_key", "is_nonempty_file", "sha256_hex"]
