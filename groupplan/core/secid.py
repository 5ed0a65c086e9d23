"""Secure identifiers: url-safe tokens from a cryptographically secure source."""

import secrets


def secure_identifier(length: int = 16) -> str:
    """Return a url-safe token built from `length` random bytes."""
    if length < 1:
        raise ValueError("length must be positive")
    return secrets.token_urlsafe(length)


def generate_secret(length: int = 64) -> str:
    """Random signing secret for sessions when none is configured."""
    return secure_identifier(length)
