# src/accord/services/__init__.py
"""Federation services for the Accord application."""

from accord.core.errors import (
    FederationDisabled,
    FederationError,
    IdentityNotFound,
    LocalEntityNotFound,
    MissingRequiredField,
    ResolutionFailure,
    TypeMismatch,
)
from .federation_keys import ActorKeyStore, RemoteActorMetadata, generate_rsa_keypair
from .resolver import ObjectResolver, close_object_resolver, get_object_resolver
from .transforms import FederationTransformer, ResolvedActor

__all__ = [
    "ActorKeyStore",
    "FederationDisabled",
    "FederationError",
    "FederationTransformer",
    "IdentityNotFound",
    "LocalEntityNotFound",
    "MissingRequiredField",
    "ObjectResolver",
    "RemoteActorMetadata",
    "ResolutionFailure",
    "ResolvedActor",
    "TypeMismatch",
    "close_object_resolver",
    "generate_rsa_keypair",
    "get_object_resolver",
]
