"""SQLite storage for users, refresh tokens and video metadata."""

from __future__ import annotations

import os
import sqlite3
from datetime import datetime, timezone
from typing import Optional, Union
from uuid import UUID, uuid4

from .models import (
    CreateRefreshTokenParams,
    CreateUserParams,
    CreateVideoParams,
    RefreshToken,
    User,
    Video,
)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        password TEXT NOT NULL,
        email TEXT UNIQUE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_tokens (
        token TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        revoked_at TIMESTAMP,
        user_id TEXT NOT NULL,
        expires_at TIMESTAMP NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        id TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        title TEXT NOT NULL,
        description TEXT,
        thumbnail_url TEXT,
        video_url TEXT,
        user_id INTEGER,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
)

_VIDEO_COLUMNS = (
    "id, created_at, updated_at, title, description, thumbnail_url, video_url, user_id"
)


def _store_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(sep=" ")


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _video_from_row(row: sqlite3.Row) -> Video:
    return Video(
        id=UUID(str(row["id"])),
        created_at=_parse_time(row["created_at"]),
        updated_at=_parse_time(row["updated_at"]),
        title=row["title"],
        description=row["description"] or "",
        thumbnail_url=row["thumbnail_url"],
        video_url=row["video_url"],
        user_id=UUID(str(row["user_id"])),
    )


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=UUID(str(row["id"])),
        email=row["email"],
        password=row["password"],
        created_at=_parse_time(row["created_at"]),
        updated_at=_parse_time(row["updated_at"]),
    )


class Client:
    """Connection to the application's SQLite database.

    Lookups that find nothing return ``None``; database failures raise
    :class:`sqlite3.Error`.
    """

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        try:
            for statement in _SCHEMA:
                self._conn.execute(statement)
        except sqlite3.Error:
            self._conn.close()
            raise

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    def _one(self, query: str, *args) -> Optional[sqlite3.Row]:
        return self._conn.execute(query, args).fetchone()

    def reset(self) -> None:
        """Delete every row from every table."""
        for table in ("refresh_tokens", "users", "videos"):
            try:
                self._conn.execute(f"DELETE FROM {table}")
            except sqlite3.Error as exc:
                raise sqlite3.DatabaseError(
                    f"failed to reset table {table}: {exc}"
                ) from exc

    # Refresh tokens

    def create_refresh_token(
        self, params: CreateRefreshTokenParams
    ) -> Optional[RefreshToken]:
        self._conn.execute(
            """
            INSERT INTO refresh_tokens (token, created_at, updated_at, user_id, expires_at)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?)
            """,
            (params.token, str(params.user_id), _store_time(params.expires_at)),
        )
        return self.get_refresh_token(params.token)

    def revoke_refresh_token(self, token: str) -> None:
        self._conn.execute(
            "UPDATE refresh_tokens SET revoked_at = CURRENT_TIMESTAMP WHERE token = ?",
            (token,),
        )

    def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        row = self._one(
            """
            SELECT token, created_at, updated_at, user_id, expires_at, revoked_at
            FROM refresh_tokens WHERE token = ?
            """,
            token,
        )
        if row is None:
            return None
        return RefreshToken(
            token=row["token"],
            user_id=UUID(str(row["user_id"])),
            expires_at=_parse_time(row["expires_at"]),
            created_at=_parse_time(row["created_at"]),
            updated_at=_parse_time(row["updated_at"]),
            revoked_at=_parse_time(row["revoked_at"]),
        )

    def delete_refresh_token(self, token: str) -> None:
        self._conn.execute("DELETE FROM refresh_tokens WHERE token = ?", (token,))

    # Users

    def get_users(self) -> list[User]:
        """Return every user with only the id and email filled in."""
        rows = self._conn.execute("SELECT id, email FROM users").fetchall()
        return [User(id=UUID(str(row["id"])), email=row["email"]) for row in rows]

    def get_user_by_email(self, email: str) -> Optional[User]:
        row = self._one(
            "SELECT id, created_at, updated_at, email, password FROM users WHERE email = ?",
            email,
        )
        return None if row is None else _user_from_row(row)

    def get_user_by_refresh_token(self, token: str) -> Optional[User]:
        row = self._one(
            """
            SELECT u.id, u.email, u.created_at, u.updated_at, u.password
            FROM users u
            JOIN refresh_tokens rt ON u.id = rt.user_id
            WHERE rt.token = ?
            """,
            token,
        )
        return None if row is None else _user_from_row(row)

    def create_user(self, params: CreateUserParams) -> Optional[User]:
        user_id = uuid4()
        self._conn.execute(
            """
            INSERT INTO users (id, created_at, updated_at, email, password)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?)
            """,
            (str(user_id), params.email, params.password),
        )
        return self.get_user(user_id)

    def get_user(self, user_id: UUID) -> Optional[User]:
        row = self._one(
            "SELECT id, created_at, updated_at, email, password FROM users WHERE id = ?",
            str(user_id),
        )
        return None if row is None else _user_from_row(row)

    def delete_user(self, user_id: UUID) -> None:
        self._conn.execute("DELETE FROM users WHERE id = ?", (str(user_id),))

    # Videos

    def get_videos(self, user_id: UUID) -> list[Video]:
        """Return a user's videos, newest first."""
        rows = self._conn.execute(
            f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE user_id = ? ORDER BY created_at DESC",
            (str(user_id),),
        ).fetchall()
        return [_video_from_row(row) for row in rows]

    def create_video(self, params: CreateVideoParams) -> Optional[Video]:
        video_id = uuid4()
        self._conn.execute(
            """
            INSERT INTO videos (id, created_at, updated_at, title, description, user_id)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?, ?)
            """,
            (str(video_id), params.title, params.description, str(params.user_id)),
        )
        return self.get_video(video_id)

    def get_video(self, video_id: UUID) -> Optional[Video]:
        row = self._one(f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE id = ?", str(video_id))
        return None if row is None else _video_from_row(row)

    def update_video(self, video: Video) -> None:
        self._conn.execute(
            """
            UPDATE videos
            SET title = ?, description = ?, thumbnail_url = ?, video_url = ?, user_id = ?
            WHERE id = ?
            """,
            (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                str(video.user_id),
                str(video.id),
            ),
        )

    def delete_video(self, video_id: UUID) -> None:
        self._conn.execute("DELETE FROM videos WHERE id = ?", (str(video_id),))