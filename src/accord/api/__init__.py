"""HTTP endpoints for the Accord federation server."""

from .federation import router as federation_router
from .nodeinfo import router as nodeinfo_router
from .nodeinfo import well_known_router

__all__ = [
    "federation_router",
    "nodeinfo_router",
    "well_known_router",
]
