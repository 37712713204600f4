"""Random values for flow parameters the user did not supply."""

from __future__ import annotations

import secrets


def generate_random_string(size: int) -> str:
    """Return *size* cryptographically random bytes, hex-encoded.

    The result is ``2 * size`` characters long and safe to embed in a URL
    without escaping.
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    return secrets.token_hex(size)
