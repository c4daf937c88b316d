"""Resolution of remote ActivityPub objects."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from accord.core.config import FederationConfig, load_federation_config
from accord.core.errors import FederationError, ResolutionFailure, TypeMismatch
from accord.schemas.activitypub import ACTIVITY_JSON, APBase, parse_ap_object

logger = logging.getLogger(__name__)

ACCEPT_HEADER = (
    f'{ACTIVITY_JSON}, application/ld+json; profile="https://www.w3.org/ns/activitystreams", '
    "application/json"
)
HTTP_BAD_REQUEST = 400


class ObjectResolver:
    """Fetches remote actors and objects and validates them into wire models.

    The resolver holds no cache; callers check the key store before
    resolving. Retries and signature checks are not performed here.
    """

    def __init__(
        self,
        config: FederationConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._client = client
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.http_timeout_seconds),
                    follow_redirects=True,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_json(self, url: str) -> dict[str, Any]:
        """GET a remote ActivityPub document."""
        client = await self._ensure_client()
        headers = {
            "Accept": ACCEPT_HEADER,
            "User-Agent": self.config.user_agent,
        }
        try:
            response = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise ResolutionFailure(f"Failed to fetch {url}: {exc}") from exc

        if response.status_code >= HTTP_BAD_REQUEST:
            raise ResolutionFailure(f"{url} responded with {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ResolutionFailure(f"{url} did not return JSON") from exc
        if not isinstance(payload, dict):
            raise ResolutionFailure(f"{url} did not return a JSON object")
        return payload

    async def resolve(
        self,
        ref: str | Mapping[str, Any] | APBase,
        expected: str | tuple[str, ...] | None = None,
    ) -> APBase:
        """Resolve a reference to a typed wire object.

        Args:
            ref: Object URL, embedded JSON object or already parsed model.
            expected: Vocabulary term(s) the caller accepts.

        Raises:
            ResolutionFailure: The fetch failed or returned an unusable document.
            TypeMismatch: The object is not of an expected type.
        """
        if isinstance(ref, (APBase, Mapping)):
            return parse_ap_object(ref, expected)

        logger.debug("Resolving remote object %s", ref)
        payload = await self.fetch_json(str(ref))
        try:
            return parse_ap_object(payload, expected)
        except TypeMismatch:
            raise
        except FederationError as exc:
            raise ResolutionFailure(f"Invalid object at {ref}: {exc}") from exc


class _ResolverSingleton:
    """Process-wide resolver sharing one HTTP client."""

    _instance: ObjectResolver | None = None

    @classmethod
    def get_instance(cls) -> ObjectResolver:
        if cls._instance is None:
            cls._instance = ObjectResolver(load_federation_config())
        return cls._instance

    @classmethod
    async def reset(cls) -> None:
        if cls._instance is not None:
            await cls._instance.close()
            cls._instance = None


def get_object_resolver() -> ObjectResolver:
    """Return the shared resolver instance."""
    return _ResolverSingleton.get_instance()


async def close_object_resolver() -> None:
    """Close the shared resolver's HTTP client, if one was created."""
    await _ResolverSingleton.reset()
