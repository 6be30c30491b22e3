"""Unit tests for auth/gate.py -- the ownership policy.

Covers:
- Exact match allows
- Any difference denies, including case-only differences
- ensure_owner raises OwnershipMismatch carrying both identities
"""

from __future__ import annotations

import pytest

from auth.errors import AuthError, OwnershipMismatch
from auth.gate import authorize, ensure_owner


class TestAuthorize:
    def test_exact_match_allows(self) -> None:
        assert authorize("alice@example.com", "alice@example.com") is True

    @pytest.mark.parametrize(
        "target",
        ["bob@example.com", "Alice@example.com", "alice@example.com ", "", "alice@example.co"],
    )
    def test_mismatch_denies(self, target: str) -> None:
        assert authorize("alice@example.com", target) is False


class TestEnsureOwner:
    def test_owner_passes(self) -> None:
        ensure_owner("alice@example.com", "alice@example.com")

    def test_non_owner_raises(self) -> None:
        with pytest.raises(OwnershipMismatch) as excinfo:
            ensure_owner("alice@example.com", "bob@example.com")
        assert excinfo.value.principal_email == "alice@example.com"
        assert excinfo.value.target_email == "bob@example.com"

    def test_mismatch_is_not_an_authentication_error(self) -> None:
        """Forbidden (403) and unauthenticated (401) must stay separate branches."""
        assert not issubclass(OwnershipMismatch, AuthError)
