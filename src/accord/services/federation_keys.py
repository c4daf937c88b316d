"""Actor key store: per-actor federation identity and signing keys."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import cast

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accord.core.config import FederationConfig
from accord.core.errors import IdentityNotFound
from accord.db.session import Base
from accord.models import ActorType, FederationKey
from accord.utils import snowflake

logger = logging.getLogger(__name__)

RSA_PUBLIC_EXPONENT = 65537

KeypairFactory = Callable[[int], tuple[str, str]]
ShadowBuilder = Callable[[str], Iterable[Base]]


def generate_rsa_keypair(key_size: int = 4096) -> tuple[str, str]:
    """Generate an RSA key pair.

    Returns:
        Tuple of (public_key_pem, private_key_pem); SPKI and PKCS8 encodings.
    """
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=key_size,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return public_pem, private_pem


@dataclass(frozen=True)
class RemoteActorMetadata:
    """Remote actor fields cached alongside its identity."""

    actor_type: ActorType
    domain: str
    public_key: str
    inbox: str
    outbox: str
    username: str | None = None
    followers: str | None = None
    following: str | None = None


class ActorKeyStore:
    """Lookup and creation of `FederationKey` records.

    Creation is guarded by the table's unique constraints: when two writers
    race on the same actor id or federated id, the loser rolls back and
    returns the record the winner stored.
    """

    def __init__(
        self,
        db: Session,
        config: FederationConfig,
        keypair_factory: KeypairFactory = generate_rsa_keypair,
    ) -> None:
        self.db = db
        self.config = config
        self._keypair_factory = keypair_factory

    def find_by_actor(self, actor_id: str, domain: str | None = None) -> FederationKey | None:
        """Return the identity of a local entity, optionally restricted to a domain."""
        query = select(FederationKey).where(FederationKey.actor_id == actor_id)
        if domain is not None:
            query = query.where(FederationKey.domain == domain)
        return self.db.scalars(query).first()

    def find_by_actors(self, actor_ids: Sequence[str]) -> list[FederationKey]:
        if not actor_ids:
            return []
        query = select(FederationKey).where(FederationKey.actor_id.in_(list(actor_ids)))
        return list(self.db.scalars(query).all())

    def find_by_federated_id(self, federated_id: str) -> FederationKey | None:
        query = select(FederationKey).where(FederationKey.federated_id == federated_id)
        return self.db.scalars(query).first()

    def require_actor(self, actor_id: str, domain: str | None = None) -> FederationKey:
        """Return the identity of an actor that must exist.

        Raises:
            IdentityNotFound: If no record matches.
        """
        keys = self.find_by_actor(actor_id, domain)
        if keys is None:
            raise IdentityNotFound(actor_id)
        return keys

    def get_or_create_local(self, actor_id: str, actor_type: ActorType) -> FederationKey:
        """Return the identity of a local actor, generating signing keys on first use."""
        existing = self.find_by_actor(actor_id)
        if existing is not None:
            return existing

        public_pem, private_pem = self._keypair_factory(self.config.key_size)
        actor_url = self.config.actor_url(actor_type.value, actor_id)
        keys = FederationKey(
            actor_id=actor_id,
            type=actor_type,
            domain=self.config.account_domain,
            federated_id=actor_url,
            inbox=f"{actor_url}/inbox",
            outbox=f"{actor_url}/outbox",
            followers=f"{actor_url}/followers",
            following=f"{actor_url}/following",
            public_key=public_pem,
            private_key=private_pem,
        )

        stored = self._insert([keys], lambda: self.find_by_actor(actor_id))
        if stored is keys:
            logger.info("Generated federation keys for %s %s", actor_type.value, actor_id)
        return stored

    def cache_remote(
        self,
        federated_id: str,
        metadata: RemoteActorMetadata,
        *,
        build_shadow: ShadowBuilder | None = None,
    ) -> FederationKey:
        """Cache a remote actor's identity under a freshly minted local id.

        Args:
            federated_id: Canonical URL of the remote actor.
            metadata: Public key, username, domain and collection URLs.
            build_shadow: Optional callable receiving the new local id and
                returning local entities to persist in the same transaction.

        Returns:
            The stored record, or the one a concurrent writer stored first.
        """
        existing = self.find_by_federated_id(federated_id)
        if existing is not None:
            return existing

        keys = FederationKey(
            actor_id=snowflake.generate(),
            type=metadata.actor_type,
            domain=metadata.domain,
            username=metadata.username,
            federated_id=federated_id,
            inbox=metadata.inbox,
            outbox=metadata.outbox,
            followers=metadata.followers,
            following=metadata.following,
            public_key=metadata.public_key,
            private_key=None,
        )
        companions = list(build_shadow(keys.actor_id)) if build_shadow else []

        stored = self._insert([keys, *companions], lambda: self.find_by_federated_id(federated_id))
        if stored is keys:
            logger.info(
                "Cached remote %s %s as %s",
                metadata.actor_type.value,
                federated_id,
                keys.actor_id,
            )
        return stored

    def _insert(
        self,
        rows: list[Base],
        reload: Callable[[], FederationKey | None],
    ) -> FederationKey:
        """Persist rows in one transaction; on a uniqueness conflict return the winner."""
        self.db.add_all(rows)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            winner = reload()
            if winner is None:
                raise
            logger.debug("Lost identity creation race, reusing %s", winner.federated_id)
            return winner
        return cast(FederationKey, rows[0])
