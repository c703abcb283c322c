"""Base class and field helper of generated dataclasses."""

import base64
import dataclasses
from dataclasses import MISSING, dataclass
from typing import Any

from dataclasses_json import DataClassJsonMixin, config

METADATA_KEY = "raingen"


class Model(DataClassJsonMixin):
    """Base of every generated message."""


@dataclass
class Empty(Model):
    """Stand-in for ``google.protobuf.Empty``."""


@dataclass(frozen=True)
class Extension:
    """An extension field declared in a schema file."""

    extendee: str
    number: int
    name: str


def _omit(value: Any) -> bool:
    return not value


def _encode_bytes(value: Any) -> Any:
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, list):
        return [_encode_bytes(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode_bytes(v) for k, v in value.items()}
    return value


def _decode_bytes(value: Any) -> Any:
    if isinstance(value, str):
        return base64.b64decode(value)
    if isinstance(value, list):
        return [_decode_bytes(v) for v in value]
    if isinstance(value, dict):
        return {k: _decode_bytes(v) for k, v in value.items()}
    return value


def field(
    name: str,
    *,
    form: str | None = None,
    default: Any = MISSING,
    default_factory: Any = MISSING,
    omitempty: bool = True,
    kind: str | None = None,
    oneof: str | None = None,
) -> Any:
    """Declare a message field serialized as ``name``.

    Empty values are left out of JSON unless ``omitempty`` is false.
    ``kind="bytes"`` encodes byte strings as base64. ``form`` names the field
    in query strings and form bodies.
    """
    metadata = config(
        field_name=name,
        exclude=_omit if omitempty else None,
        encoder=_encode_bytes if kind == "bytes" else None,
        decoder=_decode_bytes if kind == "bytes" else None,
    )
    metadata[METADATA_KEY] = {"form": form or name, "kind": kind, "oneof": oneof}
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata)


def field_options(f: dataclasses.Field) -> dict[str, Any]:
    return f.metadata.get(METADATA_KEY, {})


def which_oneof(obj: Model, oneof: str) -> str | None:
    """Name of the attribute of ``oneof`` that is set on ``obj``, if any."""
    for f in dataclasses.fields(obj):
        if field_options(f).get("oneof") == oneof and getattr(obj, f.name) is not None:
            return f.name
    return None
