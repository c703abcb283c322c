"""Names every declaration generates, and symbols re-exported by public imports."""

import weakref

from .context import GENERATED_NAMES, CompilationContext
from .types import Enum, Extension, ImportedSymbol, Message, SchemaFile
from .util import BUILTIN_NAMES, camel_case_slice, safe_identifier


class _Allocator:
    """Hands out module-level names that are unique within one file."""

    def __init__(self) -> None:
        self.used: set[str] = set()

    def __call__(self, name: str) -> str:
        name = orig = safe_identifier(name)
        i = 1
        while name in self.used or name in BUILTIN_NAMES or name in GENERATED_NAMES:
            name = f"{orig}_{i}"
            i += 1
        self.used.add(name)
        return name


def export_symbols(ctx: CompilationContext) -> None:
    """Allocate the generated names of every message, enum and extension."""
    for file in ctx.files:
        _export_file(file)


def _export_file(file: SchemaFile) -> None:
    file.exported = {}
    allocate = _Allocator()
    for msg in file.messages:
        if msg.is_map_entry:
            continue
        file.add_export(msg, allocate(camel_case_slice(msg.type_name())))
    for enum in file.enums:
        file.add_export(enum, allocate(camel_case_slice(enum.type_name())))
        prefix = enum.prefix()
        for value in enum.proto.value:
            file.add_export(enum, allocate(prefix + value.name))
    for ext in all_extensions(file):
        file.add_export(ext, allocate("E_" + camel_case_slice(ext.type_name())))


def all_extensions(file: SchemaFile) -> list[Extension]:
    """Top-level extensions followed by those declared inside messages."""
    out = list(file.extensions)
    for msg in file.messages:
        out.extend(msg.extensions)
    return out


def class_name(obj: Message | Enum) -> str:
    return obj.file.exported[obj][0]


def value_names(enum: Enum) -> list[str]:
    """Module constant names of the enum's values, in declaration order."""
    return enum.file.exported[enum][1:]


def extension_name(ext: Extension) -> str:
    return ext.file.exported[ext][0]


def wrap_imported(ctx: CompilationContext) -> None:
    """Make the top-level declarations of public dependencies visible to importers."""
    for file in ctx.files:
        file.imported = []
        for dep_name in file.public_dependencies:
            dep = ctx.file_by_name(dep_name)
            objects: list[Message | Enum | Extension] = [
                msg for msg in dep.messages if msg.parent is None and not msg.is_map_entry
            ]
            objects.extend(enum for enum in dep.enums if enum.parent is None)
            objects.extend(dep.extensions)
            file.imported.extend(
                ImportedSymbol(_file_ref=weakref.ref(file), obj=obj) for obj in objects
            )
