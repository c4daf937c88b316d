"""NodeInfo discovery and document endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import func, select

from accord.api.dependencies import ConfigDep, SessionDep, require_federation_enabled
from accord.api.responses import ActivityJSONResponse
from accord.core.settings import settings
from accord.models import Message, User

NODEINFO_SCHEMA = "http://nodeinfo.diaspora.software/ns/schema/2.0"
SOFTWARE_NAME = "accord"

well_known_router = APIRouter(
    prefix="/.well-known",
    tags=["nodeinfo"],
    dependencies=[Depends(require_federation_enabled)],
)

router = APIRouter(
    prefix="/federation/nodeinfo",
    tags=["nodeinfo"],
    dependencies=[Depends(require_federation_enabled)],
    default_response_class=ActivityJSONResponse,
)


@well_known_router.get("/nodeinfo")
async def get_nodeinfo_links(config: ConfigDep) -> dict[str, Any]:
    """Point NodeInfo clients at the 2.0 document."""
    return {
        "links": [
            {
                "rel": NODEINFO_SCHEMA,
                "href": f"{config.base_url}/nodeinfo/2.0.json",
            }
        ]
    }


@router.get("/2.0.json")
async def get_nodeinfo(db: SessionDep) -> dict[str, Any]:
    """Return the NodeInfo 2.0 document.

    Activity windows are not tracked and are reported as -1.
    """
    total_users = db.scalar(select(func.count()).select_from(User)) or 0
    local_posts = db.scalar(select(func.count()).select_from(Message)) or 0
    return {
        "version": "2.0",
        "software": {
            "name": SOFTWARE_NAME,
            "version": settings.app_version,
        },
        "protocols": ["activitypub"],
        "usage": {
            "users": {
                "total": total_users,
                "activeHalfyear": -1,
                "activeMonth": -1,
            },
            "localPosts": local_posts,
            "localComments": 0,
        },
        "openRegistrations": not settings.registration_disabled,
    }
