"""Decoding requests into generated models."""

import dataclasses
import enum
import types
from enum import StrEnum
from typing import Any, Union, get_args, get_origin, get_type_hints

from flask import request
from werkzeug.datastructures import MultiDict

from .model import Model, field_options

_TRUE = frozenset(["1", "t", "T", "TRUE", "true", "True"])
_FALSE = frozenset(["0", "f", "F", "FALSE", "false", "False"])


class BindError(ValueError):
    """Raised when a request cannot be decoded into a model."""


class Binding(StrEnum):
    """Where the fields of the input model are read from."""

    JSON = "json"
    FORM = "form"
    QUERY = "query"
    FORM_POST = "formpost"
    FORM_MULTIPART = "formmultipart"


def bind(obj: Model, binding: Binding, *, strict: bool = True) -> None:
    """Fill ``obj`` from the current request.

    With ``strict`` unset, malformed input is skipped instead of raising
    :class:`BindError`, and whatever could be decoded is kept.
    """
    if binding == Binding.JSON:
        _bind_json(obj, strict)
    else:
        _bind_form(obj, _form_source(binding), strict)


def _bind_json(obj: Model, strict: bool) -> None:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        if strict:
            raise BindError("request body is not a JSON object")
        return
    try:
        decoded = type(obj).from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        if strict:
            raise BindError(f"invalid JSON body: {e}") from e
        return
    for f in dataclasses.fields(obj):
        setattr(obj, f.name, getattr(decoded, f.name))


def _form_source(binding: Binding) -> MultiDict:
    match binding:
        case Binding.QUERY:
            return request.args
        case Binding.FORM_POST:
            return request.form
        case Binding.FORM_MULTIPART:
            source = MultiDict(request.form)
            for key, storage in request.files.items(multi=True):
                source.add(key, storage.read())
            return source
        case _:
            return request.values


def _unwrap_optional(hint: Any) -> Any:
    if get_origin(hint) in (Union, types.UnionType):
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _convert(hint: Any, raw: Any) -> Any:
    if isinstance(raw, bytes):
        if hint is bytes:
            return raw
        raw = raw.decode("utf-8")
    if hint is str:
        return raw
    if hint is bytes:
        return raw.encode("utf-8")
    if hint is bool:
        if raw in _TRUE:
            return True
        if raw in _FALSE:
            return False
        raise ValueError(f"invalid boolean {raw!r}")
    if isinstance(hint, type) and issubclass(hint, enum.IntEnum):
        if raw in hint.__members__:
            return hint[raw]
        return hint(int(raw))
    if hint is int:
        return int(raw)
    if hint is float:
        return float(raw)
    raise TypeError(f"unsupported form field type {hint}")


def _bind_form(obj: Model, source: MultiDict, strict: bool) -> None:
    hints = get_type_hints(type(obj))
    for f in dataclasses.fields(obj):
        key = field_options(f).get("form", f.name)
        if key not in source:
            continue
        hint = _unwrap_optional(hints[f.name])
        try:
            if get_origin(hint) is list:
                (elem,) = get_args(hint)
                value: Any = [_convert(elem, raw) for raw in source.getlist(key)]
            else:
                value = _convert(hint, source.get(key))
        except TypeError:
            # Nested messages and maps have no form encoding.
            continue
        except ValueError as e:
            if strict:
                raise BindError(f"{key}: {e}") from e
            continue
        setattr(obj, f.name, value)
