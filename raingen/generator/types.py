"""Descriptor object graph the generator works on.

Each schema file owns flat arenas of its messages and enums. Nesting is
recorded as arena indexes, and every object refers back to its file through
a weak reference, so the graph never owns itself in a cycle.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import Protocol, Union

from google.protobuf import descriptor_pb2

from .util import camel_case_slice, to_camel_case

# Field numbers from descriptor.proto used to build SourceCodeInfo paths.
PACKAGE_PATH = 2  # FileDescriptorProto.package
MESSAGE_PATH = 4  # FileDescriptorProto.message_type
ENUM_PATH = 5  # FileDescriptorProto.enum_type
SERVICE_PATH = 6  # FileDescriptorProto.service
MESSAGE_FIELD_PATH = 2  # DescriptorProto.field
MESSAGE_MESSAGE_PATH = 3  # DescriptorProto.nested_type
MESSAGE_ENUM_PATH = 4  # DescriptorProto.enum_type
ENUM_VALUE_PATH = 2  # EnumDescriptorProto.value
SERVICE_METHOD_PATH = 2  # ServiceDescriptorProto.method

FieldType = descriptor_pb2.FieldDescriptorProto.Type
FieldLabel = descriptor_pb2.FieldDescriptorProto.Label


class Object(Protocol):
    """What messages, enums, extensions and imported symbols have in common."""

    @property
    def file(self) -> SchemaFile: ...

    def type_name(self) -> list[str]: ...


@dataclass(eq=False, kw_only=True)
class _Common:
    _file_ref: weakref.ReferenceType[SchemaFile] = field(repr=False)

    @property
    def file(self) -> SchemaFile:
        file = self._file_ref()
        if file is None:
            raise ReferenceError("schema file has been released")
        return file


@dataclass(eq=False, kw_only=True)
class Message(_Common):
    """A message declaration. ``parent_id`` indexes the file's message arena."""

    proto: descriptor_pb2.DescriptorProto
    arena_id: int
    index: int
    parent_id: int | None
    path: str
    group: bool = False
    nested_ids: list[int] = field(default_factory=list)
    enum_ids: list[int] = field(default_factory=list)
    extensions: list[Extension] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def parent(self) -> Message | None:
        if self.parent_id is None:
            return None
        return self.file.messages[self.parent_id]

    @property
    def nested(self) -> list[Message]:
        return [self.file.messages[i] for i in self.nested_ids]

    @property
    def nested_enums(self) -> list[Enum]:
        return [self.file.enums[i] for i in self.enum_ids]

    @property
    def is_map_entry(self) -> bool:
        return self.proto.options.map_entry

    @property
    def deprecated(self) -> bool:
        return self.proto.options.deprecated

    def type_name(self) -> list[str]:
        """Elements of the dotted type name, without the package."""
        names: list[str] = []
        msg: Message | None = self
        while msg is not None:
            names.append(msg.name)
            msg = msg.parent
        return names[::-1]


@dataclass(eq=False, kw_only=True)
class Enum(_Common):
    """An enum declaration; ``parent_id`` is the message it is declared in."""

    proto: descriptor_pb2.EnumDescriptorProto
    arena_id: int
    index: int
    parent_id: int | None
    path: str

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def parent(self) -> Message | None:
        if self.parent_id is None:
            return None
        return self.file.messages[self.parent_id]

    @property
    def deprecated(self) -> bool:
        return self.proto.options.deprecated

    def type_name(self) -> list[str]:
        if self.parent is None:
            return [self.name]
        return [*self.parent.type_name(), self.name]

    def prefix(self) -> str:
        """Prefix of the module-level value constants.

        Values of ``Foo.Bar`` are ``Foo_VALUE``, not ``Foo_Bar_VALUE``.
        """
        if self.parent is None:
            return to_camel_case(self.name) + "_"
        return camel_case_slice(self.type_name()[:-1]) + "_"


@dataclass(eq=False, kw_only=True)
class Extension(_Common):
    proto: descriptor_pb2.FieldDescriptorProto
    parent_id: int | None

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def parent(self) -> Message | None:
        if self.parent_id is None:
            return None
        return self.file.messages[self.parent_id]

    def type_name(self) -> list[str]:
        if self.parent is None:
            return [self.name]
        return [*self.parent.type_name(), self.name]


@dataclass(eq=False, kw_only=True)
class ImportedSymbol(_Common):
    """A declaration of a publicly imported file, visible from ``file``."""

    obj: Message | Enum | Extension

    def type_name(self) -> list[str]:
        return self.obj.type_name()


@dataclass(eq=False, kw_only=True)
class Method:
    proto: descriptor_pb2.MethodDescriptorProto
    index: int
    path: str

    @property
    def name(self) -> str:
        return self.proto.name


@dataclass(eq=False, kw_only=True)
class Service:
    proto: descriptor_pb2.ServiceDescriptorProto
    index: int
    path: str
    methods: list[Method] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.proto.name


@dataclass(eq=False)
class SchemaFile:
    """A wrapped ``FileDescriptorProto`` and everything declared in it."""

    proto: descriptor_pb2.FileDescriptorProto
    messages: list[Message] = field(default_factory=list)
    enums: list[Enum] = field(default_factory=list)
    extensions: list[Extension] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)
    imported: list[ImportedSymbol] = field(default_factory=list)
    comments: dict[str, str] = field(default_factory=dict)
    # Names each declaration generates, used to alias public imports.
    exported: dict[Message | Enum | Extension, list[str]] = field(default_factory=dict)
    import_path: str = ""
    package_name: str = ""

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def package(self) -> str:
        return self.proto.package

    @property
    def deprecated(self) -> bool:
        return self.proto.options.deprecated

    @property
    def is_proto3(self) -> bool:
        return self.proto.syntax == "proto3"

    @property
    def public_dependencies(self) -> list[str]:
        return [self.proto.dependency[i] for i in self.proto.public_dependency]

    def package_option(self) -> tuple[str, str, bool]:
        """Interpret the file's ``go_package`` option.

        Returns ``(import_path, package_name, found)``. ``a/b;name`` names both,
        ``a/b`` implies the package name ``b``, and a bare ``name`` sets only
        the package name.
        """
        opt = self.proto.options.go_package
        if not opt:
            return "", "", False
        path, sep, name = opt.partition(";")
        if sep:
            return path, name, True
        if "/" in opt:
            return opt, opt.rsplit("/", 1)[1], True
        return "", opt, True

    def add_export(self, obj: Message | Enum | Extension, name: str) -> None:
        self.exported.setdefault(obj, []).append(name)


# Field variants of a message: a plain field, or a oneof union owning its members.


@dataclass
class FieldTag:
    """Serialization metadata of one generated field."""

    json_name: str
    form_name: str
    omit_empty: bool = True
    kind: str | None = None


@dataclass
class SimpleField:
    name: str
    proto_name: str
    type: str
    default: str
    tag: FieldTag
    path: str
    default_factory: str = ""
    comment: list[str] = field(default_factory=list)
    deprecated: bool = False


@dataclass
class OneofSubField:
    name: str
    proto_name: str
    type: str
    tag: FieldTag
    path: str
    oneof: str
    comment: list[str] = field(default_factory=list)
    deprecated: bool = False


@dataclass
class OneofField:
    name: str
    getter: str
    proto_name: str
    sub_fields: list[OneofSubField] = field(default_factory=list)
    comment: list[str] = field(default_factory=list)


TopLevelField = Union[SimpleField, OneofField]
