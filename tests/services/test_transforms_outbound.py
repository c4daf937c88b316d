from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime

import pytest
from sqlalchemy.orm import Session

from accord.core.errors import FederationError, IdentityNotFound, LocalEntityNotFound
from accord.models import ActorType, FederationKey, Message
from accord.schemas.activitypub import PUBLIC_COLLECTION, APNote, to_wire
from accord.services.federation_keys import ActorKeyStore
from accord.services.transforms import FederationTransformer
from accord.utils import snowflake

BASE = "https://chat.example/federation"


def test_user_to_person_scenario(
    db_session: Session,
    transformer: FederationTransformer,
    make_user,
) -> None:
    user = make_user("ann", id="1")
    db_session.add(
        FederationKey(
            actor_id="1",
            type=ActorType.USER,
            domain="chat.example",
            federated_id=f"{BASE}/users/1",
            inbox="https://a/inbox",
            outbox="https://a/outbox",
            public_key="PEM1",
            private_key="PRIVATE1",
        )
    )
    db_session.commit()

    person = to_wire(transformer.user_to_person(user))

    assert person["type"] == "Person"
    assert person["preferredUsername"] == "1"
    assert person["name"] == "ann"
    assert person["inbox"] == "https://a/inbox"
    assert person["publicKey"]["publicKeyPem"] == "PEM1"
    assert person["publicKey"]["id"] == f"{BASE}/users/1#main-key"
    assert person["publicKey"]["owner"] == f"{BASE}/users/1"
    assert "https://www.w3.org/ns/activitystreams" in person["@context"]
    assert "privateKey" not in str(person)


def test_user_to_person_renders_avatar_and_bio(
    transformer: FederationTransformer,
    make_user,
    local_identity,
) -> None:
    user = make_user("ann", bio="hello **world**", avatar="a1b2c3")
    local_identity(user, ActorType.USER)

    person = transformer.user_to_person(user)

    assert person.summary == "hello **world**"
    assert person.icon == [f"https://cdn.chat.example/avatars/{user.id}/a1b2c3"]


def test_user_without_avatar_has_no_icon(
    transformer: FederationTransformer,
    make_user,
    local_identity,
) -> None:
    user = make_user("ann")
    local_identity(user, ActorType.USER)

    person = to_wire(transformer.user_to_person(user))

    assert "icon" not in person


def test_user_to_person_without_identity_raises(
    transformer: FederationTransformer,
    make_user,
) -> None:
    user = make_user("ann")

    with pytest.raises(IdentityNotFound):
        transformer.user_to_person(user)


def test_guild_to_organization(
    transformer: FederationTransformer,
    make_user,
    make_guild,
    local_identity,
) -> None:
    owner = make_user("owner")
    guild = make_guild(owner, name="Lounge", icon="icon-hash")
    local_identity(guild, ActorType.GUILD)

    org = to_wire(transformer.guild_to_organization(guild))

    assert org["type"] == "Organization"
    assert org["id"] == f"{BASE}/guilds/{guild.id}"
    assert org["name"] == "Lounge"
    assert org["preferredUsername"] == guild.id
    assert org["icon"] == "https://cdn.chat.example/icons/icon-hash"
    assert org["attributedTo"] == f"{BASE}/users/{owner.id}"
    assert org["followers"] == f"{BASE}/guilds/{guild.id}/followers"


def test_guild_with_remote_identity_is_not_rendered(
    db_session: Session,
    transformer: FederationTransformer,
    make_user,
    make_guild,
) -> None:
    owner = make_user("owner")
    guild = make_guild(owner)
    db_session.add(
        FederationKey(
            actor_id=guild.id,
            type=ActorType.GUILD,
            domain="remote.example",
            federated_id="https://remote.example/guilds/1",
            inbox="https://remote.example/guilds/1/inbox",
            outbox="https://remote.example/guilds/1/outbox",
            public_key="PEM",
        )
    )
    db_session.commit()

    with pytest.raises(IdentityNotFound):
        transformer.guild_to_organization(guild)


def test_channel_to_group(
    transformer: FederationTransformer,
    make_user,
    make_guild,
    make_channel,
    local_identity,
) -> None:
    guild = make_guild(make_user("owner"))
    channel = make_channel(guild, name="general", topic="talk here")
    local_identity(channel, ActorType.CHANNEL)

    group = to_wire(transformer.channel_to_group(channel))

    assert group["type"] == "Group"
    assert group["id"] == f"{BASE}/channels/{channel.id}"
    assert group["name"] == "general"
    assert group["summary"] == "talk here"
    assert group["preferredUsername"] == channel.id


def test_message_to_note(
    transformer: FederationTransformer,
    make_user,
    make_guild,
    make_channel,
    make_message,
) -> None:
    author = make_user("ann")
    mentioned = make_user("bob")
    guild = make_guild(author)
    channel = make_channel(guild)
    published = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)
    message = make_message(channel, author, "hi **there**", timestamp=published)
    message.mentions = [mentioned]

    note = to_wire(transformer.message_to_note(message))

    assert note["type"] == "Note"
    assert note["id"] == f"{BASE}/messages/{message.id}"
    assert note["content"] == "<p>hi <strong>there</strong></p>"
    assert note["attributedTo"] == f"{BASE}/users/{author.id}"
    assert note["to"] == f"{BASE}/channels/{channel.id}/followers"
    assert note["tag"] == [f"{BASE}/users/{mentioned.id}"]
    assert note["attachment"] == []
    assert note["published"].startswith("2024-05-01T12:30:00")
    assert "inReplyTo" not in note
    assert "@context" not in note


def test_message_to_note_nests_reply_chain(
    transformer: FederationTransformer,
    make_user,
    make_guild,
    make_channel,
    make_message,
) -> None:
    author = make_user("ann")
    channel = make_channel(make_guild(author))
    root = make_message(channel, author, "root")
    middle = make_message(channel, author, "middle", reference_message_id=root.id)
    leaf = make_message(channel, author, "leaf", reference_message_id=middle.id)

    note = transformer.message_to_note(leaf)

    assert isinstance(note.in_reply_to, APNote)
    assert note.in_reply_to.id == f"{BASE}/messages/{middle.id}"
    assert isinstance(note.in_reply_to.in_reply_to, APNote)
    assert note.in_reply_to.in_reply_to.id == f"{BASE}/messages/{root.id}"
    assert note.in_reply_to.in_reply_to.in_reply_to is None


def test_message_to_note_handles_deep_reply_chain(
    db_session: Session,
    transformer: FederationTransformer,
    make_user,
    make_guild,
    make_channel,
    make_message,
) -> None:
    author = make_user("ann")
    channel = make_channel(make_guild(author))
    depth = sys.getrecursionlimit() + 200
    previous = make_message(channel, author, "0")
    for index in range(1, depth):
        previous = Message(
            id=snowflake.generate(),
            channel_id=channel.id,
            guild_id=channel.guild_id,
            author_id=author.id,
            content=str(index),
            reference_message_id=previous.id,
        )
        db_session.add(previous)
    db_session.commit()

    note: APNote | None = transformer.message_to_note(previous)

    seen = 0
    while note is not None:
        seen += 1
        assert isinstance(note, APNote)
        note = note.in_reply_to
    assert seen == depth


def test_message_to_note_stops_on_reply_cycle(
    db_session: Session,
    transformer: FederationTransformer,
    make_user,
    make_guild,
    make_channel,
    make_message,
    caplog: pytest.LogCaptureFixture,
) -> None:
    author = make_user("ann")
    channel = make_channel(make_guild(author))
    first = make_message(channel, author, "first")
    second = make_message(channel, author, "second", reference_message_id=first.id)
    first.reference_message_id = second.id
    db_session.commit()

    with caplog.at_level(logging.WARNING, logger="accord.services.transforms"):
        note = transformer.message_to_note(first)

    assert note.in_reply_to is not None
    assert note.in_reply_to.id == f"{BASE}/messages/{second.id}"
    assert note.in_reply_to.in_reply_to is None
    assert "loops back" in caplog.text


def test_message_to_note_ignores_missing_reply_target(
    transformer: FederationTransformer,
    make_user,
    make_guild,
    make_channel,
    make_message,
) -> None:
    author = make_user("ann")
    channel = make_channel(make_guild(author))
    message = make_message(channel, author, "orphan", reference_message_id="404")

    assert transformer.message_to_note(message).in_reply_to is None


def test_announce_for_guild_channel_is_public(
    transformer: FederationTransformer,
    make_user,
    make_guild,
    make_channel,
    make_message,
) -> None:
    author = make_user("ann")
    channel = make_channel(make_guild(author))
    message = make_message(channel, author, "hello")

    announce = to_wire(transformer.message_to_announce(message))

    assert announce["type"] == "Announce"
    assert announce["id"] == f"{BASE}/channels/{channel.id}/messages/{message.id}"
    assert announce["actor"] == f"{BASE}/users/{author.id}"
    assert announce["to"] == [PUBLIC_COLLECTION]
    assert announce["object"]["id"] == f"{BASE}/messages/{message.id}"
    assert announce["object"]["type"] == "Note"


def test_announce_for_dm_targets_other_recipients(
    db_session: Session,
    key_store: ActorKeyStore,
    transformer: FederationTransformer,
    make_user,
    make_channel,
    make_message,
    local_identity,
) -> None:
    author = make_user("ann")
    bob = make_user("bob")
    carol = make_user("carol")
    for user in (author, bob):
        local_identity(user, ActorType.USER)
    # A remote recipient cached without an inbox.
    db_session.add(
        FederationKey(
            actor_id=carol.id,
            type=ActorType.USER,
            domain="remote.example",
            federated_id="https://remote.example/users/carol",
            inbox=None,
            outbox="https://remote.example/users/carol/outbox",
            public_key="PEM",
        )
    )
    db_session.commit()
    channel = make_channel(recipients=[author, bob, carol])
    message = make_message(channel, author, "psst")

    announce = transformer.message_to_announce(message)

    assert sorted(announce.to) == sorted(
        [
            f"{BASE}/users/{bob.id}/inbox",
            "https://remote.example/users/carol/inbox",
        ]
    )
    assert f"{BASE}/users/{author.id}/inbox" not in announce.to


def test_announce_for_dm_without_other_recipients_fails(
    transformer: FederationTransformer,
    make_user,
    make_channel,
    make_message,
) -> None:
    author = make_user("ann")
    channel = make_channel(recipients=[author])
    message = make_message(channel, author, "talking to myself")

    with pytest.raises(FederationError, match="no recipients"):
        transformer.message_to_announce(message)


def test_announce_requires_channel(
    db_session: Session,
    transformer: FederationTransformer,
    make_user,
) -> None:
    author = make_user("ann")
    message = Message(id="1", channel_id="missing", author_id=author.id, content="x")

    with pytest.raises(LocalEntityNotFound):
        transformer.message_to_announce(message)
