"""Immutable federation configuration passed to the federation services.

Example:
    from accord.core.config import load_federation_config
    config = load_federation_config()
    print(config.actor_url("users", "1"))
"""

from __future__ import annotations

from dataclasses import dataclass

from accord.core.settings import Settings, settings


@dataclass(frozen=True)
class FederationConfig:
    """Configuration values consumed by the key store, resolver and transforms.

    Attributes:
        host: Public host (and optional port) federation URLs are built on.
        account_domain: Domain that owns local actors (``user@account_domain``).
        cdn_endpoint_public: Base URL of the public CDN serving avatars and icons.
        key_size: RSA modulus length for locally generated actor keys.
        http_timeout_seconds: Timeout applied to remote object fetches.
        user_agent: User-Agent header sent on remote fetches.
        default_premium: Premium flag applied to new shadow users.
        default_premium_type: Premium tier applied to new shadow users.
        default_verified: Verified flag applied to new shadow users.
        default_rights: Rights bitmask applied to new shadow users.
    """

    host: str
    account_domain: str
    cdn_endpoint_public: str
    key_size: int = 4096
    http_timeout_seconds: float = 10.0
    user_agent: str = "Accord-ActivityPub/0.1.0"
    default_premium: bool = True
    default_premium_type: int = 2
    default_verified: bool = True
    default_rights: str = "0"

    @property
    def base_url(self) -> str:
        return f"https://{self.host}/federation"

    def actor_url(self, actor_type: str, actor_id: str) -> str:
        """Return the canonical URL of a local actor of the given collection type."""
        return f"{self.base_url}/{actor_type}/{actor_id}"

    def cdn_url(self, path: str) -> str:
        return f"{self.cdn_endpoint_public.rstrip('/')}/{path.lstrip('/')}"


def load_federation_config(source: Settings | None = None) -> FederationConfig:
    """Build configuration object from global settings."""

    source = source or settings
    return FederationConfig(
        host=source.federation_host,
        account_domain=source.federation_account_domain,
        cdn_endpoint_public=source.cdn_endpoint_public,
        key_size=source.federation_key_size,
        http_timeout_seconds=float(source.federation_http_timeout_seconds),
        user_agent=source.federation_user_agent,
        default_premium=source.default_user_premium,
        default_premium_type=source.default_user_premium_type,
        default_verified=source.default_user_verified,
        default_rights=source.default_rights,
    )
