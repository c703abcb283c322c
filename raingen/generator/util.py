"""Naming helpers shared by the resolver and the emitters."""

import builtins
import keyword
import posixpath
import re

_UPPER_RUN = re.compile(r"([A-Z]+)([A-Z][a-z])")
_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_BAD_IDENT_CHARS = re.compile(r"[^0-9A-Za-z_]")

BUILTIN_NAMES = frozenset(dir(builtins))


def to_camel_case(name: str) -> str:
    """Convert a proto identifier to CamelCase.

    Underscores followed by a lower case letter are dropped and the letter is
    upper-cased; a leading underscore becomes ``X`` so the result starts with
    a capital. ``my_msg`` -> ``MyMsg``, ``_foo`` -> ``XFoo``.
    """
    if not name:
        return ""
    out: list[str] = []
    i = 0
    if name[0] == "_":
        out.append("X")
        i = 1
    while i < len(name):
        c = name[i]
        if c == "_" and i + 1 < len(name) and name[i + 1].islower():
            i += 1
            continue
        if c.isdigit():
            out.append(c)
            i += 1
            continue
        out.append(c.upper() if c.islower() else c)
        i += 1
        while i < len(name) and name[i].islower():
            out.append(name[i])
            i += 1
    return "".join(out)


def camel_case_slice(parts: list[str]) -> str:
    """CamelCase each element of a dotted type name and join with ``_``."""
    return "_".join(to_camel_case(p) for p in parts)


def dotted_slice(parts: list[str]) -> str:
    return ".".join(parts)


def to_snake_case(name: str) -> str:
    """``GetProfile`` -> ``get_profile``, ``HTTPStatus`` -> ``http_status``."""
    name = _UPPER_RUN.sub(r"\1_\2", name)
    name = _LOWER_UPPER.sub(r"\1_\2", name)
    return name.replace("-", "_").lower()


def safe_identifier(name: str) -> str:
    """Make ``name`` usable as a Python identifier."""
    name = _BAD_IDENT_CHARS.sub("_", name)
    if not name or name[0].isdigit():
        name = "_" + name
    if keyword.iskeyword(name):
        name += "_"
    return name


def clean_package_name(name: str) -> str:
    """Turn an arbitrary string into a lower-case module alias."""
    name = _BAD_IDENT_CHARS.sub("_", name.lower())
    if not name or name[0].isdigit():
        name = "_" + name
    if keyword.iskeyword(name):
        name = "_" + name
    return name


def base_name(path: str) -> str:
    """Last path element of ``path`` with its extension removed."""
    name = posixpath.basename(path)
    stem, _ = posixpath.splitext(name)
    return stem

