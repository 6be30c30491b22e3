"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Tokens arrive only as an `Authorization: Bearer <token>` header. There are no
cookies and no sessions; every protected request carries its own token.

get_current_principal() resolves the token through the TokenVerifier stored
on app.state and raises HTTP 401 for every AuthError subclass alike.
require_owner() wraps it and raises HTTP 403 when the {email} path parameter
names a different account. Because it runs as a dependency, both checks
finish before the route body executes.

Layer rule: auth/dependencies.py may import from fastapi (for Depends /
HTTPException / Request) because it is part of the FastAPI dependency
injection system. It does not import from api/.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request

from auth.errors import AuthError, OwnershipMismatch
from auth.gate import ensure_owner
from auth.models import Principal
from auth.tokens import TokenVerifier

logger = logging.getLogger("myflix.auth")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": "Authentication required."},
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, or None."""
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_principal(request: Request) -> Principal:
    """Require a valid bearer token. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise _unauthorized()

    verifier: TokenVerifier = request.app.state.token_verifier
    try:
        return verifier.verify(token)
    except AuthError as exc:
        logger.info("Token rejected (%s) on %s %s", exc.reason, request.method, request.url.path)
        raise _unauthorized() from exc


def require_owner(email: str, principal: Principal = Depends(get_current_principal)) -> Principal:
    """Require that the authenticated principal owns the {email} path target.

    Raises HTTP 401 if unauthenticated, HTTP 403 if the emails differ. The
    target account is not looked up here: a foreign email is forbidden
    whether or not it exists.

    Use as a FastAPI dependency on routes with an {email} path parameter:
        @router.patch("/users/{email}")
        def route(email: str, principal: Principal = Depends(require_owner)): ...
    """
    try:
        ensure_owner(principal.email, email)
    except OwnershipMismatch as exc:
        logger.warning("Ownership check failed: user_id=%s targeted another account", principal.id)
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "You may only modify your own account."},
        ) from exc
    return principal
