"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these only own the domain shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass
class Principal:
    """A registered MyFlix account.

    email is the identity key. It is compared with exact string equality
    everywhere (token subject, path parameter, store lookup) -- no case
    folding happens after registration.

    hashed_password always holds a bcrypt hash, never plaintext. The store
    only accepts a field named hashed_password; routes hash before writing.

    favorite_movies is a set in spirit: the store suppresses duplicates and
    callers must not rely on its order.
    """

    email: str
    firstname: str
    lastname: str
    hashed_password: str
    id: int | None = None
    birthday: str | None = None  # ISO 8601 date (YYYY-MM-DD)
    favorite_movies: list[str] = field(default_factory=list)
    created_at: str | None = None


@dataclass(frozen=True)
class AuthSuccess:
    principal: Principal


@dataclass(frozen=True)
class AuthFailure:
    """A failed credential check. reason is the same for every failure cause."""

    reason: str


AuthenticationOutcome = Union[AuthSuccess, AuthFailure]
