"""ActivityPub endpoints rendering local users, guilds, channels and messages."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from accord.api.dependencies import (
    ConfigDep,
    KeyStoreDep,
    SessionDep,
    TransformerDep,
    require_federation_enabled,
)
from accord.api.responses import ActivityJSONResponse, error_body
from accord.core.config import FederationConfig
from accord.core.errors import IdentityNotFound, LocalEntityNotFound
from accord.models import ActorType, Channel, Guild, Message, User
from accord.schemas.activitypub import ACTIVITYSTREAMS_CONTEXT, to_wire
from accord.services.federation_keys import ActorKeyStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/federation",
    tags=["federation"],
    dependencies=[Depends(require_federation_enabled)],
    default_response_class=ActivityJSONResponse,
)


def _ensure_local_identity(
    key_store: ActorKeyStore,
    config: FederationConfig,
    actor_id: str,
    actor_type: ActorType,
) -> None:
    """Make sure a local actor has keys; shadows of remote actors are not served.

    Key generation blocks, so the routes calling this are plain ``def`` and
    run in the threadpool.
    """
    keys = key_store.get_or_create_local(actor_id, actor_type)
    if keys.domain != config.account_domain:
        raise IdentityNotFound(actor_id)


@router.get("/users/{user_id}")
def get_person(
    user_id: str,
    db: SessionDep,
    config: ConfigDep,
    key_store: KeyStoreDep,
    transformer: TransformerDep,
) -> dict[str, Any]:
    """Return a local user as an ActivityPub Person."""
    user = db.get(User, user_id)
    if user is None:
        raise LocalEntityNotFound("User", user_id)
    _ensure_local_identity(key_store, config, user.id, ActorType.USER)
    return to_wire(transformer.user_to_person(user))


@router.get("/guilds/{guild_id}")
def get_organization(
    guild_id: str,
    db: SessionDep,
    config: ConfigDep,
    key_store: KeyStoreDep,
    transformer: TransformerDep,
) -> dict[str, Any]:
    """Return a local guild as an ActivityPub Organization."""
    guild = db.get(Guild, guild_id)
    if guild is None:
        raise LocalEntityNotFound("Guild", guild_id)
    _ensure_local_identity(key_store, config, guild.id, ActorType.GUILD)
    return to_wire(transformer.guild_to_organization(guild))


@router.get("/channels/{channel_id}")
def get_group(
    channel_id: str,
    db: SessionDep,
    config: ConfigDep,
    key_store: KeyStoreDep,
    transformer: TransformerDep,
) -> dict[str, Any]:
    """Return a local channel as an ActivityPub Group."""
    channel = db.get(Channel, channel_id)
    if channel is None:
        raise LocalEntityNotFound("Channel", channel_id)
    _ensure_local_identity(key_store, config, channel.id, ActorType.CHANNEL)
    return to_wire(transformer.channel_to_group(channel))


@router.get("/messages/{message_id}")
def get_note(
    message_id: str,
    db: SessionDep,
    transformer: TransformerDep,
) -> dict[str, Any]:
    """Return a message as a Note, reply chain included."""
    message = db.get(Message, message_id)
    if message is None:
        raise LocalEntityNotFound("Message", message_id)
    note = transformer.message_to_note(message)
    return to_wire(note.model_copy(update={"context": ACTIVITYSTREAMS_CONTEXT}))


@router.get("/channels/{channel_id}/messages/{message_id}")
def get_announce(
    channel_id: str,
    message_id: str,
    db: SessionDep,
    transformer: TransformerDep,
) -> dict[str, Any]:
    """Return a channel message wrapped in the Announce used for delivery."""
    message = db.get(Message, message_id)
    if message is None or message.channel_id != channel_id:
        raise LocalEntityNotFound("Message", message_id)
    logger.debug("Rendering announce for message %s in channel %s", message_id, channel_id)
    return to_wire(transformer.message_to_announce(message))


@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def unknown_endpoint(path: str) -> ActivityJSONResponse:
    return ActivityJSONResponse(status_code=404, content=error_body("404 endpoint not found"))
