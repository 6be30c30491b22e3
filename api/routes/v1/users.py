"""
api/routes/v1/users.py -- Account and favorites endpoints.

Routes:
  POST   /users                              -- register (public)
  GET    /users/{email}                      -- read an account (requires auth)
  PATCH  /users/{email}                      -- update own account (auth + owner)
  DELETE /users/{email}                      -- delete own account (auth + owner)
  POST   /users/{email}/movies/{movie_id}    -- add a favorite (auth + owner)
  DELETE /users/{email}/movies/{movie_id}    -- remove a favorite (auth + owner)

Ownership:
  Mutating routes depend on require_owner, which compares the token's
  principal with the {email} path parameter before the handler body runs.
  The target is therefore never looked up for a foreign email: the answer is
  403 even if that account does not exist.

Passwords:
  Hashed here, once, before anything reaches the store. Register and PATCH
  are plain `def` handlers so bcrypt runs in the threadpool.

Favorites reference movies by opaque id. They are not validated against a
catalog and are not cleaned up when a movie goes away.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.models import MessageResponse, UserCreate, UserPatch, UserResponse
from auth.dependencies import get_current_principal, require_owner
from auth.models import Principal
from auth.passwords import hash_password
from auth.store import PrincipalStore

logger = logging.getLogger("myflix.api.users")

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": "User not found."},
    )


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"code": "conflict", "message": "A user with that email already exists."},
    )


# ---------------------------------------------------------------------------
# Registration (public)
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
def register(request: Request, body: UserCreate) -> UserResponse:
    """Create a new account. The password is hashed before it is stored."""
    store: PrincipalStore = request.app.state.principal_store
    principal = Principal(
        email=body.email,
        firstname=body.firstname,
        lastname=body.lastname,
        hashed_password=hash_password(body.password),
        birthday=body.birthday.isoformat() if body.birthday else None,
    )
    try:
        created = store.create(principal)
    except IntegrityError as exc:
        raise _conflict() from exc
    logger.info("Registered user_id=%s", created.id)
    return UserResponse.from_principal(created)


# ---------------------------------------------------------------------------
# Authenticated reads
# ---------------------------------------------------------------------------


@router.get("/users/{email}", response_model=UserResponse)
def get_user(
    request: Request,
    email: str,
    principal: Principal = Depends(get_current_principal),
) -> UserResponse:
    """Return a single account by email."""
    store: PrincipalStore = request.app.state.principal_store
    found = store.find_by_email(email)
    if found is None:
        raise _not_found()
    return UserResponse.from_principal(found)


# ---------------------------------------------------------------------------
# Owner-only mutations
# ---------------------------------------------------------------------------


@router.patch("/users/{email}", response_model=UserResponse)
def update_user(
    request: Request,
    email: str,
    body: UserPatch,
    principal: Principal = Depends(require_owner),
) -> UserResponse:
    """Update the caller's own account. A new password is re-hashed before storage."""
    store: PrincipalStore = request.app.state.principal_store

    updates: dict = body.model_dump(exclude_unset=True, exclude_none=True)
    if "password" in updates:
        updates["hashed_password"] = hash_password(updates.pop("password"))
    if "birthday" in updates:
        updates["birthday"] = updates["birthday"].isoformat()
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )

    try:
        updated = store.update(email, **updates)
    except IntegrityError as exc:
        raise _conflict() from exc
    if updated is None:
        raise _not_found()
    return UserResponse.from_principal(updated)


@router.delete("/users/{email}", response_model=MessageResponse)
def delete_user(
    request: Request,
    email: str,
    principal: Principal = Depends(require_owner),
) -> MessageResponse:
    """Delete the caller's own account. Outstanding tokens stop working immediately."""
    store: PrincipalStore = request.app.state.principal_store
    if not store.delete(email):
        raise _not_found()
    logger.info("Deleted user_id=%s", principal.id)
    return MessageResponse(message=f"{email} was deleted.")


@router.post("/users/{email}/movies/{movie_id}", response_model=UserResponse)
def add_favorite(
    request: Request,
    email: str,
    movie_id: str,
    principal: Principal = Depends(require_owner),
) -> UserResponse:
    """Add a movie to the caller's favorites. Adding it twice keeps one entry."""
    store: PrincipalStore = request.app.state.principal_store
    updated = store.add_favorite(email, movie_id)
    if updated is None:
        raise _not_found()
    return UserResponse.from_principal(updated)


@router.delete("/users/{email}/movies/{movie_id}", response_model=UserResponse)
def remove_favorite(
    request: Request,
    email: str,
    movie_id: str,
    principal: Principal = Depends(require_owner),
) -> UserResponse:
    """Remove a movie from the caller's favorites."""
    store: PrincipalStore = request.app.state.principal_store
    updated = store.remove_favorite(email, movie_id)
    if updated is None:
        raise _not_found()
    return UserResponse.from_principal(updated)
