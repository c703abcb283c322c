"""Canonical layout for generated modules.

Generated text is parsed back with :mod:`ast`; a parse failure is fatal and
reports the source with line numbers. The top-level import block is sorted
into ``__future__``, standard library and third-party groups, and top-level
statements are laid out two blank lines apart.
"""

import ast
import sys

from .errors import EmissionError

_GROUP_FUTURE = 0
_GROUP_STDLIB = 1
_GROUP_THIRD_PARTY = 2


def numbered(text: str) -> str:
    return "".join(f"{n:5d}\t{line}\n" for n, line in enumerate(text.splitlines(), start=1))


def _parse(text: str) -> ast.Module:
    try:
        return ast.parse(text)
    except SyntaxError as e:
        raise EmissionError(
            f"bad Python source code was generated: {e}\n{numbered(text)}"
        ) from e


def _import_group(node: ast.Import | ast.ImportFrom) -> int:
    if isinstance(node, ast.ImportFrom):
        module = node.module or ""
    else:
        module = node.names[0].name
    top = module.split(".", 1)[0]
    if top == "__future__":
        return _GROUP_FUTURE
    if top in sys.stdlib_module_names:
        return _GROUP_STDLIB
    return _GROUP_THIRD_PARTY


def _import_key(node: ast.Import | ast.ImportFrom) -> tuple[int, int, str, str]:
    if isinstance(node, ast.ImportFrom):
        return _import_group(node), 1, node.module or "", ast.unparse(node)
    return _import_group(node), 0, node.names[0].name, ast.unparse(node)


def _sorted_names(node: ast.Import | ast.ImportFrom) -> ast.Import | ast.ImportFrom:
    node.names.sort(key=lambda alias: (alias.name, alias.asname or ""))
    return node


def _import_block(nodes: list[ast.Import | ast.ImportFrom]) -> list[str]:
    lines: list[str] = []
    previous = None
    seen: set[str] = set()
    for node in sorted((_sorted_names(n) for n in nodes), key=_import_key):
        line = ast.unparse(node)
        if line in seen:
            continue
        seen.add(line)
        group = _import_group(node)
        if previous is not None and group != previous:
            lines.append("")
        lines.append(line)
        previous = group
    return lines


def _segment(lines: list[str], start: int, end: int) -> list[str]:
    """Lines ``start..end`` (0-based, inclusive) with blank runs collapsed."""
    out: list[str] = []
    for line in lines[start : end + 1]:
        line = line.rstrip()
        if not line and out and not out[-1]:
            continue
        out.append(line)
    while out and not out[-1]:
        out.pop()
    return out


def _first_line(node: ast.stmt) -> int:
    """0-based first line of ``node``, decorators included."""
    first = node.lineno
    for decorator in getattr(node, "decorator_list", []):
        first = min(first, decorator.lineno - 1)
    return first - 1


def _adjacent_assignments(previous: ast.stmt | None, node: ast.stmt) -> bool:
    if not isinstance(previous, ast.Assign) or not isinstance(node, ast.Assign):
        return False
    return node.lineno == (previous.end_lineno or previous.lineno) + 1


def format_source(text: str) -> str:
    """Parse, canonicalize and pretty-print generated module ``text``."""
    tree = _parse(text)
    lines = text.splitlines()
    body = tree.body

    # Comment lines before the first statement form the module preamble.
    first = _first_line(body[0]) if body else len(lines)
    preamble = _segment(lines, 0, first - 1)
    while preamble and not preamble[0]:
        preamble.pop(0)

    imports: list[ast.Import | ast.ImportFrom] = []
    for node in body:
        if not isinstance(node, (ast.Import, ast.ImportFrom)):
            break
        imports.append(node)

    blocks: list[list[str]] = []
    if imports:
        blocks.append(_import_block(imports))

    # Each statement owns the comment lines between it and its predecessor.
    # Runs of assignments on consecutive lines stay together.
    previous: ast.stmt | None = None
    start = (imports[-1].end_lineno or imports[-1].lineno) if imports else first
    for node in body[len(imports) :]:
        end = (node.end_lineno or node.lineno) - 1
        segment = _segment(lines, start, end)
        while segment and not segment[0]:
            segment.pop(0)
        if _adjacent_assignments(previous, node) and blocks:
            blocks[-1].extend(segment)
        else:
            blocks.append(segment)
        previous = node
        start = end + 1

    trailing = _segment(lines, start, len(lines) - 1)
    while trailing and not trailing[0]:
        trailing.pop(0)
    if trailing:
        blocks.append(trailing)

    out = "\n\n\n".join("\n".join(block) for block in blocks if block)
    if preamble:
        out = "\n".join(preamble) + ("\n\n" + out if out else "")
    out += "\n"
    try:
        ast.parse(out)
    except SyntaxError as e:
        raise EmissionError(
            f"generated Python source code could not be reformatted: {e}\n{numbered(out)}"
        ) from e
    return out
