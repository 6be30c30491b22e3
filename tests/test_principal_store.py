"""Unit tests for auth/store.py -- PrincipalStore.

Covers:
- create/find round trip by email and by id
- Duplicate email raises IntegrityError
- update() whitelists fields and returns None for unknown accounts
- Favorites behave as a set; remove is a no-op for absent ids
- delete() removes the record; ids are not reused afterwards
- Concurrent favorite writers on a file database lose no entries
- Database errors other than IntegrityError surface as StoreFault; ping()
  reports reachability
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from auth.errors import StoreFault
from auth.models import Principal
from auth.passwords import hash_password, verify_password
from auth.store import PrincipalStore


def _principal(email: str = "alice@example.com") -> Principal:
    return Principal(email=email, firstname="Alice", lastname="Liddell", hashed_password="$2b$10$placeholder")


class TestCreateAndFind:
    def test_create_assigns_id_and_timestamp(self, store) -> None:
        created = store.create(_principal())
        assert created.id is not None
        assert created.created_at
        assert created.favorite_movies == []

    def test_find_by_email_and_id(self, store) -> None:
        created = store.create(_principal())
        assert store.find_by_email("alice@example.com") == created
        assert store.find_by_id(created.id) == created

    def test_find_is_case_sensitive(self, store) -> None:
        store.create(_principal())
        assert store.find_by_email("ALICE@example.com") is None

    def test_missing_returns_none(self, store) -> None:
        assert store.find_by_email("nobody@example.com") is None
        assert store.find_by_id(9999) is None

    def test_duplicate_email_raises(self, store) -> None:
        store.create(_principal())
        with pytest.raises(IntegrityError):
            store.create(_principal())

    def test_birthday_round_trips(self, store) -> None:
        p = _principal()
        p.birthday = "1990-05-17"
        assert store.create(p).birthday == "1990-05-17"


class TestUpdate:
    def test_updates_whitelisted_fields(self, store) -> None:
        store.create(_principal())
        updated = store.update("alice@example.com", firstname="Alicia", birthday="1990-01-01")
        assert updated.firstname == "Alicia"
        assert updated.birthday == "1990-01-01"

    def test_password_field_name_is_rejected(self, store) -> None:
        """Only hashed_password is writable -- plaintext cannot slip through update()."""
        store.create(_principal())
        with pytest.raises(ValueError):
            store.update("alice@example.com", password="longpass1")

    def test_hashed_password_update(self, make_principal, store) -> None:
        make_principal("alice@example.com", "longpass1")
        updated = store.update("alice@example.com", hashed_password=hash_password("newpass99"))
        assert verify_password("newpass99", updated.hashed_password)
        assert not verify_password("longpass1", updated.hashed_password)

    def test_email_change_keeps_id(self, store) -> None:
        created = store.create(_principal())
        updated = store.update("alice@example.com", email="alice@new.example.com")
        assert updated.id == created.id
        assert store.find_by_email("alice@example.com") is None

    def test_email_change_to_taken_email_raises(self, store) -> None:
        store.create(_principal("alice@example.com"))
        store.create(_principal("bob@example.com"))
        with pytest.raises(IntegrityError):
            store.update("alice@example.com", email="bob@example.com")

    def test_unknown_account_returns_none(self, store) -> None:
        assert store.update("nobody@example.com", firstname="X") is None


class TestFavorites:
    def test_add_suppresses_duplicates(self, store) -> None:
        store.create(_principal())
        store.add_favorite("alice@example.com", "tt0111161")
        updated = store.add_favorite("alice@example.com", "tt0111161")
        assert updated.favorite_movies == ["tt0111161"]

    def test_add_and_remove(self, store) -> None:
        store.create(_principal())
        store.add_favorite("alice@example.com", "tt0111161")
        store.add_favorite("alice@example.com", "tt0068646")
        updated = store.remove_favorite("alice@example.com", "tt0111161")
        assert updated.favorite_movies == ["tt0068646"]

    def test_remove_absent_is_noop(self, store) -> None:
        store.create(_principal())
        assert store.remove_favorite("alice@example.com", "tt0000000").favorite_movies == []

    def test_unknown_account_returns_none(self, store) -> None:
        assert store.add_favorite("nobody@example.com", "tt0111161") is None
        assert store.remove_favorite("nobody@example.com", "tt0111161") is None


class TestDelete:
    def test_delete_removes_record(self, store) -> None:
        store.create(_principal())
        assert store.delete("alice@example.com") is True
        assert store.find_by_email("alice@example.com") is None

    def test_delete_missing_returns_false(self, store) -> None:
        assert store.delete("nobody@example.com") is False

    def test_ids_are_not_reused(self, store) -> None:
        """A token carrying a deleted id must never resolve to a newer account."""
        first = store.create(_principal("alice@example.com"))
        store.delete("alice@example.com")
        second = store.create(_principal("bob@example.com"))
        assert second.id != first.id
        assert store.find_by_id(first.id) is None


class TestStoreFaults:
    def test_ping_ok(self, store) -> None:
        assert store.ping() is True

    def test_operational_error_becomes_store_fault(self, store) -> None:
        with store.engine.begin() as conn:
            conn.execute(text("DROP TABLE users"))
        with pytest.raises(StoreFault):
            store.find_by_email("alice@example.com")
        with pytest.raises(StoreFault):
            store.find_by_id(1)

    def test_corrupt_database_becomes_store_fault(self, tmp_path) -> None:
        """sqlite reports a garbage file as DatabaseError, not OperationalError."""
        db_path = tmp_path / "corrupt.db"
        s = PrincipalStore(f"sqlite:///{db_path}")
        s.engine.dispose()
        for leftover in tmp_path.glob("corrupt.db-*"):
            leftover.unlink()
        db_path.write_bytes(b"this is not a sqlite database " * 64)
        try:
            with pytest.raises(StoreFault):
                s.find_by_email("alice@example.com")
            assert s.ping() is False
        finally:
            s.close()


class TestConcurrentFavorites:
    """Two requests from the same owner may race; neither write may be lost."""

    WRITERS = 16

    @pytest.fixture
    def file_store(self, tmp_path):
        s = PrincipalStore(f"sqlite:///{tmp_path / 'favorites.db'}")
        s.create(_principal())
        yield s
        s.close()

    def test_parallel_adds_keep_every_movie(self, file_store) -> None:
        movie_ids = [f"tt{i:07d}" for i in range(self.WRITERS)]
        with ThreadPoolExecutor(max_workers=self.WRITERS) as pool:
            list(pool.map(lambda m: file_store.add_favorite("alice@example.com", m), movie_ids))
        stored = file_store.find_by_email("alice@example.com").favorite_movies
        assert sorted(stored) == movie_ids

    def test_parallel_duplicate_adds_store_one_entry(self, file_store) -> None:
        with ThreadPoolExecutor(max_workers=self.WRITERS) as pool:
            list(pool.map(lambda _: file_store.add_favorite("alice@example.com", "tt0111161"), range(self.WRITERS)))
        assert file_store.find_by_email("alice@example.com").favorite_movies == ["tt0111161"]

    def test_parallel_removes_keep_the_rest(self, file_store) -> None:
        movie_ids = [f"tt{i:07d}" for i in range(self.WRITERS)]
        for m in movie_ids:
            file_store.add_favorite("alice@example.com", m)
        to_remove = movie_ids[::2]
        with ThreadPoolExecutor(max_workers=self.WRITERS) as pool:
            list(pool.map(lambda m: file_store.remove_favorite("alice@example.com", m), to_remove))
        stored = file_store.find_by_email("alice@example.com").favorite_movies
        assert sorted(stored) == movie_ids[1::2]
