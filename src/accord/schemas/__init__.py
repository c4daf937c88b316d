# src/accord/schemas/__init__.py
"""Pydantic schemas for the Accord application."""

from .activitypub import (
    ACTIVITY_JSON,
    ACTIVITYSTREAMS_CONTEXT,
    PUBLIC_COLLECTION,
    APAnnounce,
    APGroup,
    APNote,
    APObject,
    APOrganization,
    APPerson,
    APPublicKey,
    parse_ap_object,
    to_wire,
)

__all__ = [
    "ACTIVITY_JSON",
    "ACTIVITYSTREAMS_CONTEXT",
    "PUBLIC_COLLECTION",
    "APAnnounce",
    "APGroup",
    "APNote",
    "APObject",
    "APOrganization",
    "APPerson",
    "APPublicKey",
    "parse_ap_object",
    "to_wire",
]
