"""
Cryptographic helpers for verification codes.

Codes are hashed with SHA-256 over ``code + salt`` and compared in constant
time. Only the digest is kept; the plaintext never leaves the call that
produced it.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Callable

CodeHasher = Callable[[str], bytes]


def hash_code(code: str, salt: str) -> bytes:
    """Return the raw SHA-256 digest of *code* concatenated with *salt*.

    Args:
        code: Plaintext verification code.
        salt: Application-level salt shared by every session.

    Returns:
        32-byte digest.
    """
    return hashlib.sha256((code + salt).encode("utf-8")).digest()


def make_code_hasher(salt: str) -> CodeHasher:
    """Bind *salt* into a single-argument hasher suitable for injection."""
    if not salt:
        raise ValueError("salt must be a non-empty string")

    def _hasher(code: str) -> bytes:
        return hash_code(code, salt)

    return _hasher


def digests_match(candidate: bytes, expected: bytes) -> bool:
    """Compare two digests without leaking the matching prefix length."""
    return hmac.compare_digest(candidate, expected)
