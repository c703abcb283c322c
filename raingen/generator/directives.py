"""Free-form ``@tag`` directives in method comments."""

import os
import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from lark import Lark, Token
from lark.exceptions import LarkError
from lark.visitors import Transformer

_g_parser: Lark | None = None

_MARKER = re.compile(r"\s?@tag\s+(.+)")


class Binding(StrEnum):
    """Request binding strategies a directive may select."""

    JSON = "json"
    FORM = "form"
    QUERY = "query"
    FORM_POST = "formpost"
    FORM_MULTIPART = "formmultipart"


@dataclass
class Directives:
    """Recognized directives of one method; anything else stays in ``raw``."""

    raw: dict[str, str] = field(default_factory=dict)

    @property
    def middlewares(self) -> list[str]:
        value = self.raw.get("middleware")
        if value is None:
            return []
        return value.split(",")

    @property
    def bind_check(self) -> bool:
        return self.raw.get("bindcheck", "").lower() != "false"

    @property
    def binding(self) -> Binding:
        """Selected strategy; unknown values fall back to JSON."""
        try:
            return Binding(self.raw.get("binding", "json").lower())
        except ValueError:
            return Binding.JSON


class TreeTransformer(Transformer):
    def flag(self, args: list[Token]) -> tuple[str, str]:
        return str(args[0]), ""

    def pair(self, args: list[Token]) -> tuple[str, str]:
        key = value = ""
        for tok in args:
            if tok.type == "KEY":
                key = str(tok)
            elif tok.type == "VALUE":
                value = str(tok)
        return key, value

    def start(self, args: list[Any]) -> dict[str, str]:
        return dict(arg for arg in args if arg is not None)


def _parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/directives.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar)
    return _g_parser


def parse_directives(comment: str) -> Directives:
    """Extract the directives following the first ``@tag`` marker of ``comment``.

    A comment without a marker has no directives. Later tokens win when a key
    repeats. Text the grammar rejects is split on whitespace instead.
    """
    match = _MARKER.search(comment)
    if match is None:
        return Directives()
    text = match.group(1).rstrip()
    try:
        tree = _parser().parse(text)
    except LarkError:
        return Directives(raw=_split_directives(text))
    return Directives(raw=TreeTransformer().transform(tree))


def _split_directives(text: str) -> dict[str, str]:
    raw: dict[str, str] = {}
    for token in text.split():
        key, _, value = token.partition(":")
        raw[key] = value
    return raw
