"""Shared API dependencies for the federation endpoints."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from accord.core.config import FederationConfig, load_federation_config
from accord.core.errors import FederationDisabled
from accord.core.settings import settings
from accord.db.session import get_db
from accord.services.federation_keys import ActorKeyStore
from accord.services.resolver import ObjectResolver, get_object_resolver
from accord.services.transforms import FederationTransformer

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def require_federation_enabled() -> None:
    """Hide federation endpoints while federation is switched off.

    Raises:
        FederationDisabled: 404 when ``FEDERATION_ENABLED`` is false.
    """
    if not settings.federation_enabled:
        raise FederationDisabled()


def get_federation_config() -> FederationConfig:
    """Get a configuration snapshot for the federation services."""
    return load_federation_config()


ConfigDep = Annotated[FederationConfig, Depends(get_federation_config)]
ResolverDep = Annotated[ObjectResolver, Depends(get_object_resolver)]


def get_key_store(db: SessionDep, config: ConfigDep) -> ActorKeyStore:
    """Get an actor key store bound to the request's session."""
    return ActorKeyStore(db, config)


KeyStoreDep = Annotated[ActorKeyStore, Depends(get_key_store)]


def get_transformer(
    db: SessionDep,
    config: ConfigDep,
    resolver: ResolverDep,
    key_store: KeyStoreDep,
) -> FederationTransformer:
    """Get a transformer sharing the request's session and key store."""
    return FederationTransformer(db, config, resolver, key_store)


TransformerDep = Annotated[FederationTransformer, Depends(get_transformer)]
