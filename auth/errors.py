"""
auth/errors.py -- Exception taxonomy for the auth subsystem.

Every "cannot proceed" outcome of a token check is an AuthError subclass so
the HTTP guard can catch the base class once and answer 401 for all of them.
The subclasses exist for logging and tests; callers must not branch on them
to produce different responses.

OwnershipMismatch is a policy decision rather than an authentication failure
and is deliberately NOT an AuthError -- it maps to 403.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for authentication failures (HTTP 401 at the boundary)."""

    reason = "unauthenticated"


class InvalidCredentials(AuthError):
    reason = "invalid_credentials"


class TokenMalformed(AuthError):
    reason = "token_malformed"


class TokenSignatureInvalid(AuthError):
    reason = "token_signature_invalid"


class TokenExpired(AuthError):
    reason = "token_expired"


class PrincipalNotFound(AuthError):
    """The token is valid but the account it names no longer exists."""

    reason = "principal_not_found"


class OwnershipMismatch(Exception):
    """The authenticated principal does not own the targeted account (HTTP 403)."""

    def __init__(self, principal_email: str, target_email: str) -> None:
        self.principal_email = principal_email
        self.target_email = target_email
        super().__init__("Principal is not the owner of the target account.")


class StoreFault(Exception):
    """The principal store is unreachable or failed (HTTP 500). Never retried here."""


class SignerMisconfigured(ValueError):
    """The token signing secret is missing or too weak. Fatal at startup."""
