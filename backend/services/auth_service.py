"""
Authentication helpers: password hashing, token generation, normalization.
"""

import os
import secrets

import bcrypt

from backend.utils.constants import RESERVED_USERNAMES

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash; malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_token() -> str:
    """Generate an opaque, URL-safe random token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def normalize_email(email: str) -> str:
    """Trim and lowercase an email address."""
    return email.strip().lower()


def is_reserved_username(username: str) -> bool:
    return username.strip().lower() in RESERVED_USERNAMES
