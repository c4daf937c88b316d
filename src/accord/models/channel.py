"""SQLAlchemy models for guild channels and direct-message channels."""

from __future__ import annotations

import enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accord.db.session import Base


class ChannelType(enum.IntEnum):
    """Channel kinds shared with the client protocol."""

    GUILD_TEXT = 0
    DM = 1
    GUILD_VOICE = 2
    GROUP_DM = 3
    GUILD_CATEGORY = 4


class Channel(Base):
    """Text or voice channel inside a guild, or a DM conversation."""

    __tablename__ = "channels"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[int] = mapped_column(Integer, nullable=False, default=ChannelType.GUILD_TEXT)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    topic: Mapped[str | None] = mapped_column(Text, nullable=True)
    guild_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("guilds.id", ondelete="CASCADE"), nullable=True
    )
    owner_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_message_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    guild: Mapped[Optional["Guild"]] = relationship("Guild", back_populates="channels")
    recipients: Mapped[list[ChannelRecipient]] = relationship(
        "ChannelRecipient",
        back_populates="channel",
        cascade="all, delete-orphan",
    )

    def is_dm(self) -> bool:
        return self.type in (ChannelType.DM, ChannelType.GROUP_DM)


class ChannelRecipient(Base):
    """Participant of a DM channel."""

    __tablename__ = "recipients"

    channel_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("channels.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), primary_key=True)
    # Closed DMs are hidden from the recipient's channel list until a new message arrives.
    closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    channel: Mapped[Channel] = relationship("Channel", back_populates="recipients")
