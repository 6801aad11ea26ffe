"""Verification token generation."""

import secrets
import string

from app.errors import ConfigurationError

# RFC 4648 URL-safe alphabet: 64 symbols, so each character carries 6 bits.
URL_SAFE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"


def generate_token(length: int) -> str:
    """Return a token of exactly ``length`` URL-safe characters from the OS CSPRNG."""
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        raise ConfigurationError(f"Token length must be a positive integer, got {length!r}")
    return "".join(secrets.choice(URL_SAFE_ALPHABET) for _ in range(length))
