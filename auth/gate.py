"""
auth/gate.py -- Ownership policy for mutating account routes.

The only authorization rule in MyFlix: a principal may modify the account
named in the request path only if it is their own. There are no roles, no
admin override and no delegation.

authorize() takes two plain strings so it stays independent of the HTTP
request shape. It runs before the target account is looked up, so a
mismatch is a deny even when the target does not exist.
"""

from __future__ import annotations

from auth.errors import OwnershipMismatch


def authorize(principal_email: str, target_email: str) -> bool:
    """Return True only when both identity keys are exactly equal (case-sensitive)."""
    return principal_email == target_email


def ensure_owner(principal_email: str, target_email: str) -> None:
    """Raise OwnershipMismatch unless authorize() allows the pair."""
    if not authorize(principal_email, target_email):
        raise OwnershipMismatch(principal_email, target_email)
