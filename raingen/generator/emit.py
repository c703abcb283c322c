"""Helpers shared by the model and API passes."""

from .context import CompilationContext
from .exporter import class_name
from .resolver import module_alias, module_path
from .types import PACKAGE_PATH, Enum, Message

DEPRECATION_COMMENT = "# Deprecated: Do not use."

EMPTY_TYPE = ".google.protobuf.Empty"

# Well-known types rendered as plain containers instead of generated classes.
WELL_KNOWN_TYPES: dict[str, tuple[str, tuple[str, ...]]] = {
    ".google.protobuf.Any": ("Any", ("Any",)),
    ".google.protobuf.Value": ("Any", ("Any",)),
    ".google.protobuf.Struct": ("Dict[str, Any]", ("Dict", "Any")),
    ".google.protobuf.ListValue": ("List[Any]", ("List", "Any")),
}

# Files whose declarations are never imported by generated code.
OPAQUE_PREFIXES = ("google/protobuf/", "google/api/")


def comment_lines(comment: str | None, indent: str = "") -> list[str]:
    """Turn a leading comment into ``#`` lines."""
    if not comment:
        return []
    text = comment[:-1] if comment.endswith("\n") else comment
    return [f"{indent}#{line}".rstrip() for line in text.split("\n")]


def header_lines(ctx: CompilationContext) -> list[str]:
    file = ctx.file
    lines = ["# Code generated by protoc-gen-rain. DO NOT EDIT."]
    if file.deprecated:
        lines.append(f"# {file.name} is a deprecated file.")
    else:
        lines.append(f"# source: {file.name}")
    lines.append(f"# package: {file.package_name}")
    package_comment = comment_lines(file.comments.get(str(PACKAGE_PATH)))
    if package_comment:
        lines.append("#")
        lines.extend(package_comment)
    return lines


def runtime_ref(ctx: CompilationContext) -> str:
    return ctx.imports.use_runtime(ctx.params.runtime_module)


def typing_name(ctx: CompilationContext, *names: str) -> None:
    for name in names:
        ctx.imports.use_name("typing", name)


def type_ref(ctx: CompilationContext, obj: Message | Enum, *, local: bool = True) -> str:
    """Expression naming the generated class of ``obj``.

    Classes of the file being emitted are referenced bare when ``local`` is
    set; everything else goes through an import of the declaring model module.
    """
    name = class_name(obj)
    if local and obj.file is ctx.file:
        return name
    alias = ctx.imports.use_module(module_path(ctx, obj.file, "model"), module_alias(obj.file))
    return f"{alias}.{name}"


def message_ref(ctx: CompilationContext, type_name: str, *, local: bool = True) -> str:
    """Annotation for a reference to the message named ``type_name``."""
    if type_name == EMPTY_TYPE:
        return f"{runtime_ref(ctx)}.Empty"
    if type_name in WELL_KNOWN_TYPES:
        annotation, names = WELL_KNOWN_TYPES[type_name]
        typing_name(ctx, *names)
        return annotation
    obj = ctx.object_named(type_name)
    if obj.file.name.startswith(OPAQUE_PREFIXES):
        typing_name(ctx, "Any")
        return "Any"
    return type_ref(ctx, obj, local=local)
