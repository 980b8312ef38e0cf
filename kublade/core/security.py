"""
Password hashing and API token helpers.

Passwords are stored as PBKDF2-SHA256 digests with a random salt. API tokens
are opaque random strings handed to the client once; only their SHA-256
digest is persisted so a leaked database cannot be replayed against the API.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

PASSWORD_ALGORITHM = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 260_000
TOKEN_BYTES = 40


def hash_password(password: str, *, iterations: int = PASSWORD_ITERATIONS) -> str:
    """Hash a plain text password.

    Returns:
        ``algorithm$iterations$salt$digest`` string safe to store.
    """
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{PASSWORD_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a plain text password against a stored hash."""
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
    except ValueError:
        return False
    if algorithm != PASSWORD_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def generate_token() -> str:
    """Generate a new opaque API token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Digest an API token for storage and lookup."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
