"""Corex identifiers — the opaque tokens clients see instead of origin URLs.

An identifier is ``cx_`` followed by 128 random bits in the URL-safe base64
alphabet. It never contains a ``.``, so anything after the first ``.`` in an
inbound path segment is a cosmetic extension and can be dropped.
"""

from __future__ import annotations

import secrets

COREX_ID_PREFIX = "cx_"

# 16 bytes -> 22 characters, no padding
_TOKEN_BYTES = 16


def generate_corex_id() -> str:
    """Return a fresh identifier from the system CSPRNG."""
    return COREX_ID_PREFIX + secrets.token_urlsafe(_TOKEN_BYTES)


def strip_extension(value: str) -> str:
    """``cx_abc.mp4`` -> ``cx_abc``. Values without a dot pass through."""
    return value.split(".", 1)[0]
