"""SQLAlchemy model for per-actor federation identity and key material."""

from __future__ import annotations

import enum

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from accord.db.session import Base


class ActorType(str, enum.Enum):
    """Kind of local entity owning an identity; values are URL collection names."""

    USER = "users"
    CHANNEL = "channels"
    GUILD = "guilds"


class FederationKey(Base):
    """Identity record of a federated actor.

    Locally owned actors carry a private key. Remote actors are cached with
    their public key only and are mapped onto a freshly minted local id.
    """

    __tablename__ = "federation_keys"

    # The id of the local user, channel or guild this identity belongs to.
    actor_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[ActorType] = mapped_column(
        Enum(ActorType, values_callable=lambda members: [m.value for m in members]),
        nullable=False,
    )
    domain: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    # Preferred username of remote actors. Local actors leave this null.
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    federated_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    # Remote actors without an inbox are delivered to at <federated_id>/inbox.
    inbox: Mapped[str | None] = mapped_column(Text, nullable=True)
    outbox: Mapped[str] = mapped_column(Text, nullable=False)
    followers: Mapped[str | None] = mapped_column(Text, nullable=True)
    following: Mapped[str | None] = mapped_column(Text, nullable=True)

    public_key: Mapped[str] = mapped_column(Text, nullable=False)
    private_key: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_local(self) -> bool:
        return self.private_key is not None
