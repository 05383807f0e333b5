# services/hashing.py
"""
Content hashing for ledger anchors: SHA-256 over the UTF-8 bytes of the
canonical serialization, lowercase hex. No key; anyone can recompute it.
"""
import hashlib
import re
from typing import Any

from .canonical import canonicalize

_HEX_DIGEST = re.compile(r"^[0-9a-f]{64}$")


def sha256_hex(canonical: str) -> str:
     """Return the 64-char lowercase hex SHA-256 digest of a canonical string."""
     return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def content_hash(value: Any) -> str:
     """Canonicalize a payload snapshot and hash it."""
     return sha256_hex(canonicalize(value))


def is_sha256_hex(value: Any) -> bool:
     return isinstance(value, str) and bool(_HEX_DIGEST.match(value))
