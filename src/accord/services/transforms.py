"""Mapping between local entities and ActivityPub wire objects.

Local -> wire renders are synchronous reads. Wire -> local ingestion is
asynchronous because it may resolve remote actors, and it is idempotent by
federated id: ingesting the same remote object twice yields the same local
entity.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar
from urllib.parse import urlparse

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accord.core.config import FederationConfig
from accord.core.errors import (
    FederationError,
    LocalEntityNotFound,
    MissingRequiredField,
    TypeMismatch,
)
from accord.db.session import Base
from accord.db.time import epoch, utcnow
from accord.models import (
    EVERYONE_PERMISSIONS,
    ActorType,
    Channel,
    ChannelType,
    FederationKey,
    Guild,
    Invite,
    Member,
    Message,
    Role,
    User,
    default_user_settings,
)
from accord.schemas.activitypub import (
    ACTIVITYSTREAMS_CONTEXT,
    PUBLIC_COLLECTION,
    APActor,
    APAnnounce,
    APBase,
    APGroup,
    APNote,
    APOrganization,
    APPerson,
    APPublicKey,
    parse_ap_object,
)
from accord.services.channels import get_or_create_dm_channel
from accord.services.federation_keys import ActorKeyStore, RemoteActorMetadata
from accord.services.resolver import ObjectResolver
from accord.utils import snowflake
from accord.utils.content import html_to_markdown, markdown_to_html

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
WireRef = str | Mapping[str, Any] | APBase

ACTOR_TYPES = ("Person", "Organization", "Group")
COLLECTION_SEGMENTS = {"inbox", "outbox", "followers", "following"}
_ENTITY_FOR_ACTOR: dict[ActorType, type[Base]] = {
    ActorType.USER: User,
    ActorType.GUILD: Guild,
    ActorType.CHANNEL: Channel,
}


@dataclass(frozen=True)
class ResolvedActor:
    """A resolved remote actor and the local entity mirroring it, if any."""

    wire: APBase
    entity: Base | None


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _target_segments(url: str) -> list[str]:
    """Return the path segments of an audience URL without a trailing collection name."""
    segments = [part for part in urlparse(url).path.split("/") if part]
    if segments and segments[-1] in COLLECTION_SEGMENTS:
        segments.pop()
    return segments


class FederationTransformer:
    """Bidirectional transforms between local entities and ActivityPub objects."""

    def __init__(
        self,
        db: Session,
        config: FederationConfig,
        resolver: ObjectResolver,
        key_store: ActorKeyStore | None = None,
    ) -> None:
        self.db = db
        self.config = config
        self.resolver = resolver
        self.key_store = key_store or ActorKeyStore(db, config)

    # ------------------------------------------------------------------
    # helpers

    def _url(self, *parts: str) -> str:
        return "/".join([self.config.base_url, *parts])

    def _require(self, model: type[ModelT], entity_id: Any, label: str | None = None) -> ModelT:
        entity = self.db.get(model, entity_id)
        if entity is None:
            raise LocalEntityNotFound(label or model.__name__, str(entity_id))
        return entity

    def _public_key(self, collection: str, actor_id: str, keys: FederationKey) -> APPublicKey:
        owner = self._url(collection, actor_id)
        return APPublicKey(id=f"{owner}#main-key", owner=owner, public_key_pem=keys.public_key)

    def avatar_url(self, user: User) -> str | None:
        if not user.avatar:
            return None
        return self.config.cdn_url(f"avatars/{user.id}/{user.avatar}")

    # ------------------------------------------------------------------
    # local -> wire

    def user_to_person(self, user: User) -> APPerson:
        """Render a local user as a Person.

        Raises:
            IdentityNotFound: The user has no identity record.
        """
        keys = self.key_store.require_actor(user.id)
        avatar = self.avatar_url(user)

        return APPerson(
            context=ACTIVITYSTREAMS_CONTEXT,
            id=keys.federated_id,
            name=user.username,
            preferred_username=user.id,
            summary=user.bio,
            icon=[avatar] if avatar else None,
            inbox=keys.inbox,
            outbox=keys.outbox,
            followers=keys.followers,
            following=keys.following,
            public_key=self._public_key(ActorType.USER.value, user.id, keys),
        )

    def guild_to_organization(self, guild: Guild) -> APOrganization:
        keys = self.key_store.require_actor(guild.id, self.config.account_domain)

        return APOrganization(
            context=ACTIVITYSTREAMS_CONTEXT,
            id=keys.federated_id,
            name=guild.name,
            preferred_username=guild.id,
            icon=self.config.cdn_url(f"icons/{guild.icon}") if guild.icon else None,
            attributed_to=self._url(ActorType.USER.value, guild.owner_id) if guild.owner_id else None,
            inbox=keys.inbox,
            outbox=keys.outbox,
            followers=keys.followers,
            following=keys.following,
            public_key=self._public_key(ActorType.GUILD.value, guild.id, keys),
        )

    def channel_to_group(self, channel: Channel) -> APGroup:
        keys = self.key_store.require_actor(channel.id, self.config.account_domain)

        return APGroup(
            context=ACTIVITYSTREAMS_CONTEXT,
            id=keys.federated_id,
            name=channel.name,
            preferred_username=channel.id,
            summary=channel.topic,
            inbox=keys.inbox,
            outbox=keys.outbox,
            followers=keys.followers,
            following=keys.following,
            public_key=self._public_key(ActorType.CHANNEL.value, channel.id, keys),
        )

    def message_to_note(self, message: Message) -> APNote:
        """Render a message as a Note, nesting the reply chain under ``inReplyTo``.

        A reply chain that loops back onto a message already rendered is cut
        at that point.
        """
        chain = [message]
        seen = {message.id}
        current = message
        while current.reference_message_id is not None:
            reference_id = current.reference_message_id
            if reference_id in seen:
                logger.warning(
                    "Reply chain of message %s loops back to %s", current.id, reference_id
                )
                break
            referenced = self.db.get(Message, reference_id)
            if referenced is None:
                break
            chain.append(referenced)
            seen.add(referenced.id)
            current = referenced

        note = self._note(chain[-1], None)
        for link in reversed(chain[:-1]):
            note = self._note(link, note)
        return note

    def _note(self, message: Message, in_reply_to: APNote | None) -> APNote:
        return APNote(
            id=self._url("messages", message.id),
            content=markdown_to_html(message.content),
            in_reply_to=in_reply_to,
            published=message.timestamp,
            attributed_to=self._url(ActorType.USER.value, message.author_id),
            to=self._url(ActorType.CHANNEL.value, message.channel_id, "followers"),
            tag=[self._url(ActorType.USER.value, user.id) for user in message.mentions],
            attachment=[],
        )

    def message_to_announce(self, message: Message) -> APAnnounce:
        """Wrap a message's Note for delivery.

        DM messages are addressed to each other recipient's inbox. Guild
        messages are addressed to the public collection rather than the
        channel's followers.
        """
        channel = self._require(Channel, message.channel_id)

        to = [PUBLIC_COLLECTION]
        if channel.is_dm():
            other_ids = [
                recipient.user_id
                for recipient in channel.recipients
                if recipient.user_id != message.author_id
            ]
            if not other_ids:
                raise FederationError("this dm channel has no recipients")
            to = [
                keys.inbox or f"{keys.federated_id}/inbox"
                for keys in self.key_store.find_by_actors(other_ids)
            ]

        return APAnnounce(
            context=ACTIVITYSTREAMS_CONTEXT,
            id=self._url(ActorType.CHANNEL.value, message.channel_id, "messages", message.id),
            actor=self._url(ActorType.USER.value, message.author_id),
            published=message.timestamp,
            to=to,
            object_=self.message_to_note(message),
        )

    # ------------------------------------------------------------------
    # wire -> local

    @staticmethod
    def _remote_metadata(actor: APActor, actor_type: ActorType) -> RemoteActorMetadata:
        if actor.public_key is None or not actor.public_key.public_key_pem:
            raise MissingRequiredField("publicKey.publicKeyPem", actor.type)  # type: ignore[attr-defined]
        return RemoteActorMetadata(
            actor_type=actor_type,
            domain=urlparse(str(actor.id)).hostname or "",
            public_key=actor.public_key.public_key_pem,
            inbox=actor.inbox,
            outbox=actor.outbox,
            username=actor.name,
            followers=actor.followers,
            following=actor.following,
        )

    def _cached_entity(self, federated_id: str, model: type[ModelT]) -> ModelT | None:
        keys = self.key_store.find_by_federated_id(federated_id)
        if keys is None:
            return None
        return self._require(model, keys.actor_id)

    def _ingest_actor(
        self,
        actor: APActor,
        actor_type: ActorType,
        model: type[ModelT],
        build: Any,
    ) -> ModelT:
        keys = self.key_store.cache_remote(
            str(actor.id),
            self._remote_metadata(actor, actor_type),
            build_shadow=build,
        )
        return self._require(model, keys.actor_id)

    async def person_to_user(self, person: APPerson | Mapping[str, Any]) -> User:
        """Return the local user mirroring a Person, creating the shadow user once."""
        person = parse_ap_object(person, "Person")  # type: ignore[assignment]
        if not person.id:
            raise MissingRequiredField("id", "Person")

        url = urlparse(person.id)
        hostname = url.hostname or ""
        handle = _target_segments(person.id)[-1:] or [hostname]
        email = f"{handle[0]}@{hostname}"

        cached = self._cached_entity(person.id, User)
        if cached is not None:
            return cached

        def build_user(actor_id: str) -> Iterable[Base]:
            now = utcnow()
            return [
                User(
                    id=actor_id,
                    username=person.preferred_username or handle[0],
                    discriminator=hostname,
                    bio=html_to_markdown(person.summary),
                    email=email,
                    data={"hash": "#", "valid_tokens_since": now.isoformat()},
                    extended_settings="{}",
                    settings=default_user_settings(),
                    premium=False,
                    premium_since=now if self.config.default_premium else None,
                    premium_type=self.config.default_premium_type,
                    verified=self.config.default_verified,
                    rights=self.config.default_rights,
                    created_at=now,
                )
            ]

        return self._ingest_actor(person, ActorType.USER, User, build_user)

    async def organization_to_guild(self, org: APOrganization | Mapping[str, Any]) -> Guild:
        """Return the local guild mirroring an Organization.

        A new guild gets its owner resolved from ``attributedTo`` and an
        @everyone role.
        """
        org = parse_ap_object(org, "Organization")  # type: ignore[assignment]
        if not org.id:
            raise MissingRequiredField("id", "Organization")
        metadata = self._remote_metadata(org, ActorType.GUILD)

        cached = self._cached_entity(org.id, Guild)
        if cached is not None:
            return cached

        if org.attributed_to is None:
            raise MissingRequiredField("attributedTo", "Organization")
        if not isinstance(org.attributed_to, str):
            raise FederationError("attributedTo must be string")
        owner = await self.fetch_federated_user(org.attributed_to)

        def build_guild(actor_id: str) -> Iterable[Base]:
            guild = Guild(id=actor_id, name=org.name or actor_id, owner_id=owner.entity.id)
            everyone = Role(
                id=actor_id,
                guild_id=actor_id,
                name="@everyone",
                color=0,
                hoist=False,
                managed=False,
                mentionable=False,
                permissions=EVERYONE_PERMISSIONS,
                position=0,
                icon=None,
                unicode_emoji=None,
                flags=0,
            )
            return [guild, everyone]

        keys = self.key_store.cache_remote(org.id, metadata, build_shadow=build_guild)
        return self._require(Guild, keys.actor_id)

    async def organization_to_invite(
        self,
        code: str,
        org: APOrganization | Mapping[str, Any],
    ) -> Invite:
        """Build an unsaved invite pointing at the guild mirroring `org`."""
        guild = await self.organization_to_guild(org)
        return Invite(
            code=code,
            temporary=False,
            uses=-1,
            max_uses=0,
            max_age=0,
            created_at=epoch(),
            flags=0,
            guild_id=guild.id,
            guild=guild,
            channel_id=None,
            inviter_id=guild.owner_id,
        )

    async def group_to_channel(self, group: APGroup | Mapping[str, Any], guild_id: str) -> Channel:
        """Return the local text channel mirroring a Group inside `guild_id`."""
        group = parse_ap_object(group, "Group")  # type: ignore[assignment]
        if not group.id:
            raise MissingRequiredField("id", "Group")
        metadata = self._remote_metadata(group, ActorType.CHANNEL)

        cached = self._cached_entity(group.id, Channel)
        if cached is not None:
            return cached

        def build_channel(actor_id: str) -> Iterable[Base]:
            return [
                Channel(
                    id=actor_id,
                    name=group.name,
                    topic=html_to_markdown(group.summary) or None,
                    type=ChannelType.GUILD_TEXT,
                    owner_id=None,
                    last_message_id=None,
                    position=0,
                    guild_id=guild_id,
                )
            ]

        keys = self.key_store.cache_remote(group.id, metadata, build_shadow=build_channel)
        return self._require(Channel, keys.actor_id)

    def _find_message(self, federated_id: str) -> Message | None:
        return self.db.scalars(
            select(Message).where(Message.federated_id == federated_id)
        ).first()

    def _local_reply_target(self, in_reply_to: Any) -> str | None:
        """Map a Note's ``inReplyTo`` onto the id of a stored message."""
        ref = in_reply_to.id if isinstance(in_reply_to, APNote) else in_reply_to
        if not ref:
            return None
        local_prefix = self._url("messages") + "/"
        if ref.startswith(local_prefix):
            message_id = ref[len(local_prefix):]
            return message_id if self.db.get(Message, message_id) is not None else None
        stored = self._find_message(ref)
        return stored.id if stored is not None else None

    async def note_to_message(self, note: APNote | Mapping[str, Any]) -> Message:
        """Store a remote Note as a message.

        The author must resolve to a Person. A Note addressed to a user lands
        in the DM channel between that user and the author; otherwise it
        targets an existing guild channel the author is a member of.

        Raises:
            TypeMismatch: The object is not a Note or its author is not a Person.
            MissingRequiredField: ``id``, ``attributedTo`` or ``to`` is absent.
            LocalEntityNotFound: The target user, channel or membership is absent.
        """
        note = parse_ap_object(note, "Note")  # type: ignore[assignment]
        if not note.id:
            raise MissingRequiredField("id", "Note")
        if not note.attributed_to:
            raise MissingRequiredField("attributedTo", "Note")

        existing = self._find_message(note.id)
        if existing is not None:
            return existing

        author_wire = await self.resolver.resolve(_first(note.attributed_to))
        if not isinstance(author_wire, APPerson):
            raise TypeMismatch("Person", getattr(author_wire, "type", None))
        author = await self.person_to_user(author_wire)

        to = _first(note.to)
        if not to:
            raise MissingRequiredField("to", "Note")
        segments = _target_segments(str(to))
        if not segments:
            raise LocalEntityNotFound("Channel", str(to))
        target_id = segments[-1]

        if "users" in segments or "user" in segments:
            recipient = self._require(User, target_id)
            channel = get_or_create_dm_channel(self.db, [recipient.id, author.id], recipient.id)
        else:
            channel = self._require(Channel, target_id)
            if channel.guild_id is not None:
                self._require(Member, {"id": author.id, "guild_id": channel.guild_id}, "Member")

        message = Message(
            id=snowflake.generate(),
            content=html_to_markdown(note.content),
            timestamp=note.published or utcnow(),
            author_id=author.id,
            guild_id=channel.guild_id,
            channel_id=channel.id,
            reference_message_id=self._local_reply_target(note.in_reply_to),
            nonce=note.id,
            federated_id=note.id,
            type=0,
        )
        channel.last_message_id = message.id
        self.db.add(message)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            winner = self._find_message(note.id)
            if winner is None:
                raise
            return winner
        logger.info("Stored remote note %s as message %s", note.id, message.id)
        return message

    # ------------------------------------------------------------------
    # resolution

    async def fetch_federated_user(self, ref: WireRef) -> ResolvedActor:
        """Resolve a Person and return it with its local shadow user."""
        person = await self.resolver.resolve(ref, "Person")
        user = await self.person_to_user(person)  # type: ignore[arg-type]
        return ResolvedActor(wire=person, entity=user)

    async def resolve_actor(self, ref: WireRef) -> ResolvedActor:
        """Resolve an actor and attach the local entity already mirroring it, if any."""
        wire = await self.resolver.resolve(ref, ACTOR_TYPES)
        federated_id = getattr(wire, "id", None)
        keys = self.key_store.find_by_federated_id(federated_id) if federated_id else None
        entity = None
        if keys is not None:
            entity = self.db.get(_ENTITY_FOR_ACTOR[keys.type], keys.actor_id)
        return ResolvedActor(wire=wire, entity=entity)
