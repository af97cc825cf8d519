"""
Password hashing and validation using argon2id.

Hashing itself is delegated entirely to argon2-cffi; this module only holds
the hasher parameters and the signup strength rules.
"""

from __future__ import annotations

import re

import argon2

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,
)

MIN_LENGTH = 8


class PasswordStrengthError(ValueError):
    """Raised when a password does not meet strength requirements."""


def hash_password(password: str) -> str:
    """Hash a password using argon2id. Returns the full hash string."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if ``password`` matches. Never raises on mismatch or a malformed hash."""
    try:
        return _hasher.verify(password_hash, password)
    except (argon2.exceptions.VerifyMismatchError, argon2.exceptions.InvalidHashError):
        return False


def validate_password_strength(password: str) -> None:
    """
    Raise PasswordStrengthError with the first failing rule.

    Rules: at least 8 characters, one uppercase letter, one lowercase
    letter and one digit.
    """
    if len(password) < MIN_LENGTH:
        raise PasswordStrengthError(f"Password must be at least {MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        raise PasswordStrengthError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise PasswordStrengthError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        raise PasswordStrengthError("Password must contain at least one number")
