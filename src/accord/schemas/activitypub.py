"""ActivityPub wire objects exchanged with remote servers.

Each vocabulary term is a Pydantic model discriminated by its ``type``
field. Attributes use snake_case in Python and camelCase on the wire.
Incoming payloads go through `parse_ap_object`, which turns validation
problems into federation errors before any transform sees them.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from accord.core.errors import FederationError, MissingRequiredField, TypeMismatch

ACTIVITYSTREAMS_CONTEXT = [
    "https://www.w3.org/ns/activitystreams",
    "https://w3id.org/security/v1",
]
PUBLIC_COLLECTION = "https://www.w3.org/ns/activitystreams#Public"
ACTIVITY_JSON = "application/activity+json"


class APBase(BaseModel):
    """Common configuration for all wire objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    context: Any = Field(default=None, alias="@context")


class APPublicKey(APBase):
    """Public key block attached to an actor."""

    id: str
    owner: str
    public_key_pem: str


class APActor(APBase):
    """Fields shared by every actor type."""

    id: str | None = None
    name: str | None = None
    preferred_username: str | None = None
    summary: str | None = None
    icon: Any = None
    inbox: str
    outbox: str
    followers: str | None = None
    following: str | None = None
    public_key: APPublicKey | None = None


class APPerson(APActor):
    type: Literal["Person"] = "Person"


class APOrganization(APActor):
    type: Literal["Organization"] = "Organization"
    attributed_to: Any = None


class APGroup(APActor):
    type: Literal["Group"] = "Group"


class APNote(APBase):
    type: Literal["Note"] = "Note"
    id: str | None = None
    content: str | None = None
    in_reply_to: APNote | str | None = None
    published: datetime | None = None
    attributed_to: Any = None
    to: str | list[str] | None = None
    tag: list[Any] | None = None
    attachment: list[Any] | None = None


class APAnnounce(APBase):
    type: Literal["Announce"] = "Announce"
    id: str | None = None
    actor: str
    published: datetime | None = None
    to: list[str] = Field(default_factory=list)
    object_: APNote = Field(alias="object")


APObject = Annotated[
    Union[APPerson, APOrganization, APGroup, APNote, APAnnounce],
    Field(discriminator="type"),
]
APActorObject = Union[APPerson, APOrganization, APGroup]

_MODELS: dict[str, type[APBase]] = {
    "Person": APPerson,
    "Organization": APOrganization,
    "Group": APGroup,
    "Note": APNote,
    "Announce": APAnnounce,
}


def _check_type(actual: str | None, expected: str | tuple[str, ...] | None) -> None:
    if expected is None:
        return
    allowed = (expected,) if isinstance(expected, str) else expected
    if actual not in allowed:
        raise TypeMismatch(" or ".join(allowed), actual)


def _wire_type(raw: Any) -> str | None:
    # JSON-LD may send a single term as a one-element array.
    if isinstance(raw, list) and len(raw) == 1:
        raw = raw[0]
    if raw is None or raw == "" or raw == []:
        return None
    if not isinstance(raw, str):
        raise TypeMismatch(" or ".join(_MODELS), repr(raw))
    return raw


def parse_ap_object(
    data: Mapping[str, Any] | APBase,
    expected: str | tuple[str, ...] | None = None,
) -> APBase:
    """Validate a wire payload into its typed model.

    Args:
        data: Raw JSON object or an already parsed model.
        expected: Vocabulary term(s) the caller accepts.

    Raises:
        MissingRequiredField: ``type`` or a required field is absent.
        TypeMismatch: ``type`` is unknown or not one of ``expected``.
        FederationError: Any other validation failure.
    """
    if isinstance(data, APBase):
        _check_type(getattr(data, "type", None), expected)
        return data

    type_ = _wire_type(data.get("type"))
    if not type_:
        raise MissingRequiredField("type")
    _check_type(type_, expected)
    model = _MODELS.get(type_)
    if model is None:
        raise TypeMismatch(" or ".join(_MODELS), type_)

    try:
        return model.model_validate({**data, "type": type_})
    except ValidationError as exc:
        for error in exc.errors():
            if error["type"] == "missing":
                field = ".".join(str(part) for part in error["loc"])
                raise MissingRequiredField(field, type_) from exc
        raise FederationError(f"Invalid {type_}: {exc.errors()[0]['msg']}") from exc


def to_wire(obj: APBase) -> dict[str, Any]:
    """Serialize a wire object into its JSON-LD representation."""
    return obj.model_dump(by_alias=True, exclude_none=True, mode="json")
