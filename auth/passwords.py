"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly (no passlib wrapper). The work factor is fixed at 10
rounds; raising it makes every login, registration and password change
proportionally slower, so it is a constant rather than a setting.

Both functions are synchronous and CPU-bound. Route handlers that call them
are plain `def` functions, which FastAPI runs in its worker threadpool, so
hashing never stalls the event loop.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import bcrypt

BCRYPT_ROUNDS = 10


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt refuses passwords longer than 72 bytes. The API layer rejects
    those at validation time (api/models.py), so they never reach here.
    """
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed or empty hash is a mismatch, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. CredentialVerifier checks against it when the
# email is unknown, so both failure paths pay the same bcrypt cost.
DUMMY_HASH: str = hash_password("myflix_timing_dummy")
