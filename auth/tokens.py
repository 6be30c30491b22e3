"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (email), user_id (internal
       store id), iat and exp. Lifetime is fixed at 7 days. There is no
       server-side revocation: a token is good until it expires or its
       principal is deleted.

  SECRET_KEY: injected into TokenIssuer and TokenVerifier at construction
       time (see api/main.py lifespan). Neither class reads configuration on
       its own. A missing or short secret raises SignerMisconfigured from the
       constructor so the service fails at startup instead of per request.

  Verification order: structure -> signature -> expiry -> claims -> store.
       Each stage short-circuits with its own AuthError subclass. The HTTP
       guard treats them all as 401; only the log line differs.

Layer rule: no imports from api/. Import from core/ is allowed -- core/ is
the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import PrincipalNotFound, SignerMisconfigured, TokenExpired, TokenMalformed, TokenSignatureInvalid
from core.config import MIN_SECRET_LENGTH

if TYPE_CHECKING:
    from auth.models import Principal
    from auth.store import PrincipalStore

logger = logging.getLogger("myflix.auth.tokens")

ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=7)


def _check_secret(secret_key: str) -> str:
    if not secret_key:
        raise SignerMisconfigured("Token signing secret is not configured.")
    if len(secret_key) < MIN_SECRET_LENGTH:
        raise SignerMisconfigured(f"Token signing secret must be at least {MIN_SECRET_LENGTH} characters.")
    return secret_key


class TokenIssuer:
    """Mint signed access tokens for authenticated principals.

    Usage:
        issuer = TokenIssuer(settings.secret_key)
        token = issuer.issue(principal)
    """

    def __init__(self, secret_key: str) -> None:
        self._secret_key = _check_secret(secret_key)

    @property
    def lifetime_seconds(self) -> int:
        return int(TOKEN_LIFETIME.total_seconds())

    def issue(self, principal: Principal, now: datetime | None = None) -> str:
        """Encode a signed JWT for the principal, expiring 7 days after `now`.

        Args:
            principal: A persisted principal (id must be set).
            now:       Issuance instant. Defaults to the current UTC time;
                       tests pass an earlier instant to mint expired tokens.
        """
        if principal.id is None:
            raise ValueError("Cannot issue a token for a principal that has not been stored.")
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": principal.email,
            "user_id": principal.id,
            "iat": issued_at,
            "exp": issued_at + TOKEN_LIFETIME,
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)


class TokenVerifier:
    """Validate a bearer token and resolve it to a stored principal.

    verify() returns the Principal or raises an AuthError subclass:
      TokenMalformed        -- not a three-part JWS, undecodable header, or
                               missing/mistyped claims
      TokenSignatureInvalid -- signature or algorithm does not match
      TokenExpired          -- exp is in the past
      PrincipalNotFound     -- signature is fine but the account is gone
    """

    def __init__(self, secret_key: str, store: PrincipalStore) -> None:
        self._secret_key = _check_secret(secret_key)
        self._store = store

    def decode(self, token: str) -> dict:
        """Check structure, signature and expiry. Returns the verified claims."""
        if not token or token.count(".") != 2:
            raise TokenMalformed("Token is not a three-part JWS.")
        try:
            jwt.get_unverified_header(token)
        except JWTError as exc:
            raise TokenMalformed("Token header could not be decoded.") from exc

        try:
            claims = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired("Token has expired.") from exc
        except JWTClaimsError as exc:
            raise TokenMalformed(f"Token claims are invalid: {exc}") from exc
        except JWTError as exc:
            raise TokenSignatureInvalid("Token signature verification failed.") from exc

        if not isinstance(claims.get("sub"), str) or not isinstance(claims.get("user_id"), int):
            raise TokenMalformed("Token is missing the sub or user_id claim.")
        if "exp" not in claims or "iat" not in claims:
            raise TokenMalformed("Token is missing the exp or iat claim.")
        return claims

    def verify(self, token: str) -> Principal:
        claims = self.decode(token)
        # StoreFault propagates: an unreachable store is a 500, not a 401.
        principal = self._store.find_by_id(claims["user_id"])
        if principal is None:
            raise PrincipalNotFound("Token refers to an account that no longer exists.")
        return principal
