"""Summary: SQLite storage implementation for FocusBoard.

Importance: Persists users, API keys, and OAuth credentials for local-first deployments.
Alternatives: Use an ORM or an external database immediately.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from focusboard.errors import CredentialStoreUnavailable
from focusboard.models import User


@dataclass(frozen=True)
class StoredUser:
    """Summary: User record with database identifier."""

    id: int
    display_name: str
    email: str


@dataclass(frozen=True)
class StoredApiKey:
    """Summary: API key record holding only the token hash.

    Importance: Supports listing and revoking keys without exposing them.
    Alternatives: Store raw tokens.
    """

    id: int
    user_id: int
    token_hash: str
    label: str | None
    created_at: str


@dataclass(frozen=True)
class StoredCredential:
    """Summary: OAuth credential row with encoded token columns.

    Importance: Keeps encoding concerns out of the storage layer.
    Alternatives: Decode tokens inside SQL helpers.
    """

    id: int
    user_id: int
    provider: str
    access_token: str
    refresh_token: str | None
    expires_at: int | None


class SqliteStore:
    """Summary: SQLite-backed storage for FocusBoard.

    Importance: Satisfies the key-value credential contract with minimal dependencies.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready before the first request.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    display_name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS api_keys (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    token_hash TEXT NOT NULL UNIQUE,
                    label TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_credentials (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    provider TEXT NOT NULL,
                    access_token TEXT NOT NULL,
                    refresh_token TEXT,
                    expires_at INTEGER,
                    UNIQUE (user_id, provider)
                )
                """
            )
            connection.commit()

    def ensure_user(self, user: User) -> int:
        """Summary: Ensure a user exists and return their ID.

        Importance: Provides a stable owner for credentials and API keys.
        Alternatives: Omit user records in single-user mode.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO users (display_name, email) VALUES (?, ?)",
                (user.display_name, user.email),
            )
            if cursor.rowcount:
                user_id = cursor.lastrowid
            else:
                cursor.execute("SELECT id FROM users WHERE email = ?", (user.email,))
                row = cursor.fetchone()
                user_id = int(row[0]) if row else 0
            connection.commit()
        return int(user_id)

    def get_user(self, user_id: int) -> StoredUser | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT id, display_name, email FROM users WHERE id = ?", (user_id,))
            row = cursor.fetchone()
        if not row:
            return None
        return StoredUser(id=int(row[0]), display_name=row[1], email=row[2])

    def create_api_key(
        self, user_id: int, token_hash: str, label: str | None, created_at: str
    ) -> int:
        """Summary: Persist a hashed API key for a user."""

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "INSERT INTO api_keys (user_id, token_hash, label, created_at) VALUES (?, ?, ?, ?)",
                (user_id, token_hash, label, created_at),
            )
            key_id = cursor.lastrowid
            connection.commit()
        return int(key_id)

    def list_api_keys(self, user_id: int) -> list[StoredApiKey]:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, user_id, token_hash, label, created_at
                FROM api_keys WHERE user_id = ? ORDER BY id
                """,
                (user_id,),
            )
            rows = cursor.fetchall()
        return [
            StoredApiKey(
                id=int(row[0]),
                user_id=int(row[1]),
                token_hash=row[2],
                label=row[3],
                created_at=row[4],
            )
            for row in rows
        ]

    def delete_api_key(self, user_id: int, key_id: int) -> bool:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "DELETE FROM api_keys WHERE id = ? AND user_id = ?",
                (key_id, user_id),
            )
            deleted = cursor.rowcount > 0
            connection.commit()
        return deleted

    def get_user_id_by_api_key(self, token_hash: str) -> int | None:
        """Summary: Resolve the owning user of a hashed API key.

        Importance: Backs the identity boundary for HTTP requests.
        Alternatives: Validate session cookies issued by an external identity service.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT user_id FROM api_keys WHERE token_hash = ?", (token_hash,))
            row = cursor.fetchone()
        return int(row[0]) if row else None

    def upsert_credential(
        self,
        user_id: int,
        provider: str,
        access_token: str,
        refresh_token: str | None,
        expires_at: int | None,
    ) -> int:
        """Summary: Insert or replace the credential for a user and provider.

        Importance: Records the initial authorization grant.
        Alternatives: Keep one row per grant and read the newest.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                INSERT INTO oauth_credentials (user_id, provider, access_token, refresh_token, expires_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id, provider) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = COALESCE(excluded.refresh_token, oauth_credentials.refresh_token),
                    expires_at = excluded.expires_at
                """,
                (user_id, provider, access_token, refresh_token, expires_at),
            )
            cursor.execute(
                "SELECT id FROM oauth_credentials WHERE user_id = ? AND provider = ?",
                (user_id, provider),
            )
            row = cursor.fetchone()
            connection.commit()
        return int(row[0])

    def find_credential(self, user_id: int, provider: str) -> StoredCredential | None:
        """Summary: Read the credential for a user and provider."""

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                SELECT id, user_id, provider, access_token, refresh_token, expires_at
                FROM oauth_credentials WHERE user_id = ? AND provider = ?
                """,
                (user_id, provider),
            )
            row = cursor.fetchone()
        if not row:
            return None
        return StoredCredential(
            id=int(row[0]),
            user_id=int(row[1]),
            provider=row[2],
            access_token=row[3],
            refresh_token=row[4],
            expires_at=int(row[5]) if row[5] is not None else None,
        )

    def update_credential(
        self,
        credential_id: int,
        access_token: str,
        expires_at: int,
        refresh_token: str | None = None,
    ) -> bool:
        """Summary: Write a refreshed access token and expiry in place.

        Importance: A None refresh token keeps the stored one.
        Alternatives: Delete and re-insert the credential row.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                UPDATE oauth_credentials
                SET access_token = ?, expires_at = ?, refresh_token = COALESCE(?, refresh_token)
                WHERE id = ?
                """,
                (access_token, expires_at, refresh_token, credential_id),
            )
            updated = cursor.rowcount > 0
            connection.commit()
        return updated

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Closes connections after use and reports storage failures as unavailability.
        Alternatives: Keep a single long-lived connection.
        """

        try:
            connection = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise CredentialStoreUnavailable(f"Cannot open database {self._db_path}") from exc
        try:
            yield connection
        except sqlite3.Error as exc:
            raise CredentialStoreUnavailable(f"Database operation failed: {exc}") from exc
        finally:
            connection.close()
