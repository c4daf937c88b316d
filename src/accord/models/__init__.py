# src/accord/models/__init__.py
"""SQLAlchemy models for the Accord application."""

from .channel import Channel, ChannelRecipient, ChannelType
from .federation_key import ActorType, FederationKey
from .guild import EVERYONE_PERMISSIONS, Guild, Invite, Member, Role
from .message import Message
from .user import User, default_user_settings

__all__ = [
    "ActorType", "FederationKey",
    "Channel", "ChannelRecipient", "ChannelType",
    "EVERYONE_PERMISSIONS", "Guild", "Invite", "Member", "Role",
    "Message",
    "User", "default_user_settings",
]
