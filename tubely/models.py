"""Records stored by the database layer and their JSON representations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_NIL_UUID = UUID(int=0)


def _format_time(value: Optional[datetime]) -> Optional[str]:
    """Render a timestamp as RFC 3339 text, using ``Z`` for UTC."""
    if value is None:
        return None
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


@dataclass
class CreateUserParams:
    """Fields needed to create a user."""

    email: str
    password: str


@dataclass
class User:
    """A registered user; ``password`` holds the stored hash."""

    id: UUID
    email: str = ""
    password: str = ""
    created_at: datetime = _ZERO_TIME
    updated_at: datetime = _ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "email": self.email,
            "password": self.password,
        }


@dataclass
class CreateVideoParams:
    """Fields needed to create a video's metadata."""

    title: str
    description: str = ""
    user_id: UUID = _NIL_UUID


@dataclass
class Video:
    """Metadata of an uploaded video."""

    id: UUID
    title: str = ""
    description: str = ""
    user_id: UUID = _NIL_UUID
    created_at: datetime = _ZERO_TIME
    updated_at: datetime = _ZERO_TIME
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "thumbnail_url": self.thumbnail_url,
            "video_url": self.video_url,
            "title": self.title,
            "description": self.description,
            "user_id": str(self.user_id),
        }


@dataclass
class CreateRefreshTokenParams:
    """Fields needed to store a refresh token."""

    token: str
    user_id: UUID
    expires_at: datetime


@dataclass
class RefreshToken:
    """A stored refresh token and its lifecycle timestamps."""

    token: str
    user_id: UUID
    expires_at: datetime
    created_at: datetime = _ZERO_TIME
    updated_at: datetime = _ZERO_TIME
    revoked_at: Optional[datetime] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "user_id": str(self.user_id),
            "expires_at": _format_time(self.expires_at),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "revoked_at": _format_time(self.revoked_at),
        }