"""Password hashing helpers backed by bcrypt."""

from __future__ import annotations

from typing import Callable

import bcrypt

PasswordHasher = Callable[[str], str]

DEFAULT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes and newer releases reject longer input.
_BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False
