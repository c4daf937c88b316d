"""SQLAlchemy models for chat messages."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accord.db.session import Base
from accord.db.time import utcnow

message_user_mentions = Table(
    "message_user_mentions",
    Base.metadata,
    Column("message_id", String(64), ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Message(Base):
    """Message posted in a guild or DM channel."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    channel_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("channels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    guild_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("guilds.id", ondelete="CASCADE"), nullable=True
    )
    author_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    # Message this one replies to.
    reference_message_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    nonce: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Id of the remote Note this message was ingested from.
    federated_id: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)

    mentions: Mapped[list["User"]] = relationship("User", secondary=message_user_mentions)
