"""SQLAlchemy models for guilds, their roles and memberships."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accord.db.session import Base
from accord.db.time import utcnow

# Permission bitmask granted to the @everyone role of a new guild.
EVERYONE_PERMISSIONS = "2251804225"


class Guild(Base):
    """A server grouping channels, roles and members."""

    __tablename__ = "guilds"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=True
    )

    roles: Mapped[list[Role]] = relationship(
        "Role", back_populates="guild", cascade="all, delete-orphan"
    )
    channels: Mapped[list["Channel"]] = relationship("Channel", back_populates="guild")


class Role(Base):
    """Guild role. The @everyone role shares its id with the guild."""

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    guild_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hoist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    managed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mentionable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    permissions: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    icon: Mapped[str | None] = mapped_column(Text, nullable=True)
    unicode_emoji: Mapped[str | None] = mapped_column(Text, nullable=True)
    flags: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    guild: Mapped[Guild] = relationship("Guild", back_populates="roles")


class Member(Base):
    """Membership of a user in a guild."""

    __tablename__ = "members"

    id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), primary_key=True)
    guild_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("guilds.id", ondelete="CASCADE"), primary_key=True
    )
    nick: Mapped[str | None] = mapped_column(Text, nullable=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Invite(Base):
    """Invite code pointing at a guild."""

    __tablename__ = "invites"

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    guild_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("guilds.id", ondelete="CASCADE"), nullable=True
    )
    channel_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("channels.id", ondelete="CASCADE"), nullable=True
    )
    inviter_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=True
    )
    temporary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    flags: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    guild: Mapped[Guild | None] = relationship("Guild")
