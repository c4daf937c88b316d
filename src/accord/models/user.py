# src/accord/models/user.py
"""SQLAlchemy models for user accounts."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from accord.db.session import Base
from accord.db.time import utcnow


def default_user_settings() -> dict[str, Any]:
    """Return the client settings stored for a freshly created account."""
    return {
        "locale": "en-US",
        "status": "online",
        "theme": "dark",
        "developer_mode": False,
        "message_display_compact": False,
        "inline_embed_media": True,
        "render_embeds": True,
        "show_current_game": True,
        "guild_positions": [],
        "restricted_guilds": [],
    }


class User(Base):
    """Chat account, either registered locally or shadowing a remote actor."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    # Remote shadow users use the remote hostname as their discriminator.
    discriminator: Mapped[str] = mapped_column(Text, nullable=False, default="0000")
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Avatar hash served by the CDN under /avatars/<user id>/<hash>.
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)

    premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    premium_since: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    premium_type: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rights: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    settings: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=default_user_settings
    )
    extended_settings: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    # Private account data: password hash and token validity.
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
