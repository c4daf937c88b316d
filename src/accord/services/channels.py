"""Direct-message channel helpers."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from accord.models import Channel, ChannelRecipient, ChannelType
from accord.utils import snowflake

logger = logging.getLogger(__name__)

__all__ = ["find_dm_channel", "get_or_create_dm_channel"]


def find_dm_channel(db: Session, recipient_ids: Sequence[str]) -> Channel | None:
    """Return the DM channel whose recipients are exactly `recipient_ids`."""
    wanted = set(recipient_ids)
    if not wanted:
        return None

    anchor = next(iter(sorted(wanted)))
    candidates = db.scalars(
        select(Channel)
        .join(ChannelRecipient, ChannelRecipient.channel_id == Channel.id)
        .where(
            ChannelRecipient.user_id == anchor,
            Channel.type.in_([ChannelType.DM, ChannelType.GROUP_DM]),
        )
    ).all()
    for channel in candidates:
        if {recipient.user_id for recipient in channel.recipients} == wanted:
            return channel
    return None


def get_or_create_dm_channel(
    db: Session,
    recipient_ids: Sequence[str],
    creator_id: str,
) -> Channel:
    """Return the DM channel between the given users, creating it if needed.

    Two recipients make a DM, more make a group DM owned by `creator_id`.
    A reused channel is reopened for every recipient.
    """
    unique_ids = list(dict.fromkeys(recipient_ids))
    existing = find_dm_channel(db, unique_ids)
    if existing is not None:
        for recipient in existing.recipients:
            recipient.closed = False
        db.commit()
        return existing

    channel_type = ChannelType.DM if len(unique_ids) <= 2 else ChannelType.GROUP_DM
    channel = Channel(
        id=snowflake.generate(),
        type=channel_type,
        owner_id=creator_id if channel_type == ChannelType.GROUP_DM else None,
        position=0,
    )
    channel.recipients = [
        ChannelRecipient(user_id=user_id, closed=False)
        for user_id in unique_ids
    ]
    db.add(channel)
    db.commit()
    logger.info("Created %s channel %s", channel_type.name, channel.id)
    return channel
