"""Federation error taxonomy.

Every failure raised by the key store, the resolver or the transforms is a
`FederationError`. The HTTP layer maps `status_code` onto the response.
"""

from __future__ import annotations

HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_BAD_GATEWAY = 502


class FederationError(RuntimeError):
    """Base exception raised for federation failures."""

    status_code: int = HTTP_BAD_REQUEST


class MissingRequiredField(FederationError):
    """Raised when a wire object lacks a field the transform needs."""

    def __init__(self, field: str, object_type: str | None = None) -> None:
        self.field = field
        self.object_type = object_type
        subject = object_type or "Object"
        super().__init__(f"{subject} must have {field}")


class TypeMismatch(FederationError):
    """Raised when a wire object's `type` is not the expected vocabulary term."""

    def __init__(self, expected: str, actual: str | None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected}, got {actual or 'no type'}")


class IdentityNotFound(FederationError):
    """Raised when an actor must have an identity record and has none."""

    status_code = HTTP_NOT_FOUND

    def __init__(self, actor_id: str) -> None:
        self.actor_id = actor_id
        super().__init__(f"No federation identity for actor {actor_id}")


class LocalEntityNotFound(FederationError):
    """Raised when a local user, channel or member referenced by a wire object is absent."""

    status_code = HTTP_NOT_FOUND

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ResolutionFailure(FederationError):
    """Raised when a remote object cannot be fetched or parsed."""

    status_code = HTTP_BAD_GATEWAY


class FederationDisabled(FederationError):
    """Raised by federation endpoints while federation is switched off."""

    status_code = HTTP_NOT_FOUND

    def __init__(self) -> None:
        super().__init__("Federation is disabled")
