"""
auth/credentials.py -- Email/password verification.

CredentialVerifier answers one question: do these credentials belong to a
registered principal? It returns an AuthenticationOutcome and never builds an
HTTP response; the login route maps AuthFailure to 400.

Every failure carries the same reason string. Which case occurred (unknown
email vs. wrong password) is written to the log only, never to the caller.
bcrypt runs on every path so response time does not reveal it either.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.models import AuthenticationOutcome, AuthFailure, AuthSuccess
from auth.passwords import DUMMY_HASH, verify_password

if TYPE_CHECKING:
    from auth.store import PrincipalStore

logger = logging.getLogger("myflix.auth.credentials")

GENERIC_FAILURE = "unknown credentials"


class CredentialVerifier:
    """Check an email/password pair against the principal store.

    Usage:
        verifier = CredentialVerifier(store)
        outcome = verifier.verify("alice@example.com", "longpass1")
        if isinstance(outcome, AuthSuccess):
            ...
    """

    def __init__(self, store: PrincipalStore) -> None:
        self._store = store

    def verify(self, email: str, password: str) -> AuthenticationOutcome:
        # StoreFault from the lookup propagates; the route turns it into a 500.
        principal = self._store.find_by_email(email) if email else None
        if principal is None:
            verify_password(password, DUMMY_HASH)
            logger.info("Login rejected: no account for the supplied email")
            return AuthFailure(GENERIC_FAILURE)
        if not verify_password(password, principal.hashed_password):
            logger.info("Login rejected: wrong password for user_id=%s", principal.id)
            return AuthFailure(GENERIC_FAILURE)
        logger.info("Login accepted for user_id=%s", principal.id)
        return AuthSuccess(principal)
