"""
api/routes/v1/auth.py -- Login and identity endpoints.

Routes:
  POST /api/v1/auth/login  -- email/password login; returns {user, token}
  GET  /api/v1/auth/me     -- current principal (requires auth)

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  Every failed login returns the same 400 body. Unknown email, empty email
  and wrong password are indistinguishable to the caller.
  Cache-Control: no-store on login responses.
  login() is a plain `def` so bcrypt runs in the threadpool, not on the loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, UserResponse
from auth.credentials import CredentialVerifier
from auth.dependencies import get_current_principal
from auth.errors import InvalidCredentials
from auth.models import AuthSuccess, Principal
from auth.tokens import TokenIssuer
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/login: public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:    requires auth (get_current_principal)
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(lambda: get_settings().login_rate_limit)  # below @router: the route must be the limited wrapper
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return the principal and a bearer token.

    A failed check raises InvalidCredentials and a StoreFault from the lookup
    is not caught here; app-level handlers turn them into 400 and 500.
    """
    verifier: CredentialVerifier = request.app.state.credential_verifier
    outcome = verifier.verify(body.email, body.password)
    if not isinstance(outcome, AuthSuccess):
        # Answered by the app-level handler with one fixed 400 body.
        raise InvalidCredentials(outcome.reason)

    issuer: TokenIssuer = request.app.state.token_issuer
    token = issuer.issue(outcome.principal)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            user=UserResponse.from_principal(outcome.principal),
            token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=issuer.lifetime_seconds,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=UserResponse)
def me(principal: Principal = Depends(get_current_principal)) -> UserResponse:
    """Return the account behind the presented token."""
    return UserResponse.from_principal(principal)
