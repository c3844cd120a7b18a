"""Password hashing helpers."""

from __future__ import annotations

import bcrypt

BCRYPT_ROUNDS = 10
# bcrypt only considers the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Return a bcrypt digest for ``password`` using the given work factor."""
    secret = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, digest: str) -> bool:
    """Check ``password`` against a digest produced by :func:`hash_password`."""
    secret = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    return bcrypt.checkpw(secret, digest.encode("ascii"))
