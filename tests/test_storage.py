"""Summary: Tests for SQLite storage layer.

Importance: Ensures users, API keys, and credentials persist as the services expect.
Alternatives: Rely on manual testing for storage operations.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from focusboard.errors import CredentialStoreUnavailable
from focusboard.models import User
from focusboard.storage.sqlite_store import SqliteStore


def _store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(str(tmp_path / "test.db"))
    store.initialize()
    return store


def test_ensure_user_is_idempotent(tmp_path: Path) -> None:
    """Summary: Verify repeated ensure_user calls return the same ID.

    Importance: The CLI and API both ensure the default user on startup.
    Alternatives: Fail on duplicate user inserts.
    """

    store = _store(tmp_path)
    first = store.ensure_user(User(display_name="Local User", email="local@focusboard"))
    second = store.ensure_user(User(display_name="Local User", email="local@focusboard"))
    other = store.ensure_user(User(display_name="Ada", email="ada@example.com"))
    assert first == second
    assert other != first
    stored = store.get_user(first)
    assert stored is not None
    assert stored.email == "local@focusboard"
    assert store.get_user(999) is None


def test_upsert_and_find_credential(tmp_path: Path) -> None:
    store = _store(tmp_path)
    user_id = store.ensure_user(User(display_name="Local User", email="local@focusboard"))
    credential_id = store.upsert_credential(user_id, "google", "access", "refresh", 1_700_000_000)
    record = store.find_credential(user_id, "google")
    assert record is not None
    assert record.id == credential_id
    assert record.access_token == "access"
    assert record.refresh_token == "refresh"
    assert record.expires_at == 1_700_000_000
    assert store.find_credential(user_id, "microsoft") is None


def test_upsert_keeps_refresh_token_when_absent(tmp_path: Path) -> None:
    """Summary: Re-linking without a refresh token keeps the stored one.

    Importance: Google omits the refresh token on repeat consents.
    Alternatives: Require users to revoke access before re-linking.
    """

    store = _store(tmp_path)
    user_id = store.ensure_user(User(display_name="Local User", email="local@focusboard"))
    first_id = store.upsert_credential(user_id, "google", "access-1", "refresh-1", 100)
    second_id = store.upsert_credential(user_id, "google", "access-2", None, 200)
    record = store.find_credential(user_id, "google")
    assert first_id == second_id
    assert record is not None
    assert record.access_token == "access-2"
    assert record.refresh_token == "refresh-1"
    assert record.expires_at == 200


def test_update_credential_in_place(tmp_path: Path) -> None:
    store = _store(tmp_path)
    user_id = store.ensure_user(User(display_name="Local User", email="local@focusboard"))
    credential_id = store.upsert_credential(user_id, "google", "access", "refresh", None)
    assert store.update_credential(credential_id, "fresh", 5000) is True
    record = store.find_credential(user_id, "google")
    assert record is not None
    assert record.access_token == "fresh"
    assert record.refresh_token == "refresh"
    assert record.expires_at == 5000
    assert store.update_credential(credential_id, "newer", 6000, refresh_token="rotated")
    record = store.find_credential(user_id, "google")
    assert record is not None
    assert record.refresh_token == "rotated"
    assert store.update_credential(credential_id + 100, "x", 1) is False


def test_store_failure_raises_unavailable(tmp_path: Path) -> None:
    """Summary: SQLite errors surface as CredentialStoreUnavailable.

    Importance: Store failures must never look like a missing credential.
    Alternatives: Return None on database errors.
    """

    store = SqliteStore(str(tmp_path / "test.db"))
    with pytest.raises(CredentialStoreUnavailable):
        store.find_credential(1, "google")
