# src/accord/main.py
"""Main entry point for the Accord federation server."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from accord.api import federation_router, nodeinfo_router, well_known_router
from accord.api.responses import federation_error_handler
from accord.core.errors import FederationError
from accord.core.logging import configure_logging, setup_request_logging
from accord.core.settings import settings
from accord.services.resolver import close_object_resolver

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Accord Federation",
    description="ActivityPub federation for a Discord-compatible chat server",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

setup_request_logging(app, settings.log_requests)

app.add_exception_handler(FederationError, federation_error_handler)  # type: ignore[arg-type]

# NodeInfo first: the federation router ends with a catch-all 404 route.
app.include_router(well_known_router)
app.include_router(nodeinfo_router)
app.include_router(federation_router)


@app.on_event("startup")
async def on_startup() -> None:
    if settings.federation_enabled:
        logger.info("Federation is enabled on %s", settings.federation_host)
    else:
        logger.info("Federation is disabled, federation routes will answer 404")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_object_resolver()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("accord.main:app", host="0.0.0.0", port=3001, reload=settings.debug)
