"""Logging setup and HTTP request logging."""

from __future__ import annotations

import logging
import sys

from fastapi import FastAPI, Request

logger = logging.getLogger("accord.requests")


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for the application process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def should_log_status(status_code: int, log_requests: str | None) -> bool:
    """Decide whether a response status is logged under the LOG_REQUESTS filter.

    The filter lists status codes that are logged. A leading ``-`` inverts it so
    every status except the listed ones is logged. An unset filter logs nothing.
    """
    if log_requests is None:
        return False
    listed = str(status_code) in log_requests
    if log_requests.startswith("-"):
        return not listed
    return listed


def setup_request_logging(app: FastAPI, log_requests: str | None) -> None:
    """Install an access-log middleware if request logging is enabled."""
    if log_requests is None:
        return
    if getattr(app.state, "request_logging", False):
        return
    app.state.request_logging = True

    logger.warning(
        "Request logging is enabled! This will spam your console! "
        "To disable this, unset the LOG_REQUESTS environment variable."
    )

    @app.middleware("http")
    async def log_request(request: Request, call_next):  # type: ignore[no-untyped-def]
        response = await call_next(request)
        if should_log_status(response.status_code, log_requests):
            client = request.client.host if request.client else "-"
            logger.info(
                '%s "%s %s" %d',
                client,
                request.method,
                request.url.path,
                response.status_code,
            )
        return response
