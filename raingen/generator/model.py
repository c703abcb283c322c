"""Model pass: dataclass declarations for the messages and enums of one file."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from google.protobuf import descriptor_pb2, text_encoding
from jinja2 import Environment, PackageLoader

from .context import CompilationContext
from .directives import parse_directives
from .emit import (
    DEPRECATION_COMMENT,
    OPAQUE_PREFIXES,
    comment_lines,
    header_lines,
    message_ref,
    runtime_ref,
    type_ref,
    typing_name,
)
from .errors import ResolutionError
from .exporter import all_extensions, class_name, extension_name, value_names
from .resolver import full_name, module_alias, module_path
from .types import (
    ENUM_VALUE_PATH,
    MESSAGE_FIELD_PATH,
    Enum,
    FieldLabel,
    FieldTag,
    FieldType,
    Message,
    OneofField,
    OneofSubField,
    SimpleField,
    TopLevelField,
)
from .util import safe_identifier

env = Environment(
    loader=PackageLoader("raingen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("model.py.j2")

SCALAR_TYPES = {
    FieldType.TYPE_DOUBLE: "float",
    FieldType.TYPE_FLOAT: "float",
    FieldType.TYPE_INT64: "int",
    FieldType.TYPE_UINT64: "int",
    FieldType.TYPE_INT32: "int",
    FieldType.TYPE_FIXED64: "int",
    FieldType.TYPE_FIXED32: "int",
    FieldType.TYPE_UINT32: "int",
    FieldType.TYPE_SFIXED32: "int",
    FieldType.TYPE_SFIXED64: "int",
    FieldType.TYPE_SINT32: "int",
    FieldType.TYPE_SINT64: "int",
    FieldType.TYPE_BOOL: "bool",
    FieldType.TYPE_STRING: "str",
    FieldType.TYPE_BYTES: "bytes",
}

ZERO_VALUES = {
    "float": "0.0",
    "int": "0",
    "bool": "False",
    "str": '""',
    "bytes": 'b""',
}

# Attributes of router.Model a field must not shadow, plus the module-level
# names a class body evaluates while the fields are declared.
RESERVED_FIELD_NAMES = frozenset(
    [
        "to_json",
        "from_json",
        "to_dict",
        "from_dict",
        "schema",
        "dataclass_json_config",
        "router",
        "dict",
        "list",
        *ZERO_VALUES,
    ]
)


@dataclass
class EnumView:
    name: str
    comment: list[str]
    deprecated: bool
    members: list[tuple[str, int, list[str], bool]]
    constants: list[tuple[str, str]]


@dataclass
class MessageView:
    name: str
    comment: list[str]
    deprecated: bool
    fields: list[TopLevelField] = field(default_factory=list)


@dataclass
class ExtensionView:
    name: str
    extendee: str
    number: int
    full_name: str


def enum_member(name: str) -> str:
    """Name of an ``IntEnum`` member for a proto enum value."""
    name = safe_identifier(name)
    # Sunder names and "mro" are rejected by the enum machinery.
    if name == "mro" or (len(name) > 2 and name[0] == name[-1] == "_" and name[-2] != "_"):
        name += "_"
    return name


class _FieldNames:
    """Allocates attribute names within one generated class."""

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self.used: set[str] = set(RESERVED_FIELD_NAMES)
        self.used.update(reserved)

    def __call__(self, name: str) -> str:
        name = safe_identifier(name)
        while name in self.used:
            name += "_"
        self.used.add(name)
        return name


@dataclass
class FieldNames:
    """Attribute names of one message: fields by field index, getters by oneof index."""

    fields: dict[int, str] = field(default_factory=dict)
    getters: dict[int, str] = field(default_factory=dict)

    def all(self) -> list[str]:
        return [*self.fields.values(), *self.getters.values()]


def field_names(msg: Message, reserved: Iterable[str] = ()) -> FieldNames:
    """Allocate the attribute names of ``msg``, avoiding ``reserved``.

    A oneof's getter is named at its first member, followed by all of its members.
    """
    allocate = _FieldNames(reserved)
    names = FieldNames()
    for i, proto in enumerate(msg.proto.field):
        if i in names.fields:
            continue
        if proto.HasField("oneof_index") and not proto.proto3_optional:
            index = proto.oneof_index
            names.getters[index] = allocate("which_" + msg.proto.oneof_decl[index].name)
            for j, member in enumerate(msg.proto.field):
                if member.HasField("oneof_index") and member.oneof_index == index:
                    names.fields[j] = allocate(member.name)
        else:
            names.fields[i] = allocate(proto.name)
    return names


def _comment(ctx: CompilationContext, path: str) -> str:
    return ctx.file.comments.get(path, "")


def _omit_empty(comment: str) -> bool:
    value = parse_directives(comment).raw.get("omitempty")
    return value is None or value.lower() == "true"


def _tag(
    proto: descriptor_pb2.FieldDescriptorProto, comment: str, kind: str | None
) -> FieldTag:
    json_name = proto.json_name or proto.name
    return FieldTag(
        json_name=json_name, form_name=json_name, omit_empty=_omit_empty(comment), kind=kind
    )


def element_type(
    ctx: CompilationContext, proto: descriptor_pb2.FieldDescriptorProto
) -> tuple[str, str | None]:
    """Annotation of a single value of ``proto`` and its serialization kind."""
    if proto.type in SCALAR_TYPES:
        annotation = SCALAR_TYPES[proto.type]
        return annotation, "bytes" if annotation == "bytes" else None
    if proto.type == FieldType.TYPE_ENUM:
        enum = ctx.object_named(proto.type_name)
        if enum.file.name.startswith(OPAQUE_PREFIXES):
            return "int", None
        return type_ref(ctx, enum), None
    return message_ref(ctx, proto.type_name), None


def _map_entry(
    ctx: CompilationContext, proto: descriptor_pb2.FieldDescriptorProto
) -> Message | None:
    if proto.type != FieldType.TYPE_MESSAGE or proto.label != FieldLabel.LABEL_REPEATED:
        return None
    obj = ctx.object_named(proto.type_name)
    if isinstance(obj, Message) and obj.is_map_entry:
        return obj
    return None


def _enum_default(ctx: CompilationContext, proto: descriptor_pb2.FieldDescriptorProto) -> str:
    enum = ctx.object_named(proto.type_name)
    if not isinstance(enum, Enum):
        raise ResolutionError(f"{proto.type_name} is not an enum")
    if enum.file.name.startswith(OPAQUE_PREFIXES):
        return str(enum.proto.value[0].number)
    value = proto.default_value or enum.proto.value[0].name
    return f"{type_ref(ctx, enum)}.{enum_member(value)}"


def _scalar_default(annotation: str, proto: descriptor_pb2.FieldDescriptorProto) -> str:
    """Python literal for a proto2 explicit default, or the zero value."""
    if not proto.HasField("default_value"):
        return ZERO_VALUES[annotation]
    value = proto.default_value
    match annotation:
        case "bool":
            return "True" if value == "true" else "False"
        case "str":
            return repr(value)
        case "bytes":
            return repr(text_encoding.CUnescape(value))
        case "float":
            if value in ("inf", "-inf", "nan"):
                return f'float("{value}")'
            return repr(float(value))
        case _:
            return str(int(value))


def _simple_field(
    ctx: CompilationContext,
    proto: descriptor_pb2.FieldDescriptorProto,
    path: str,
    name: str,
) -> SimpleField:
    comment = _comment(ctx, path)
    default, factory = "None", ""

    if entry := _map_entry(ctx, proto):
        key_type, _ = element_type(ctx, entry.proto.field[0])
        value_type, kind = element_type(ctx, entry.proto.field[1])
        typing_name(ctx, "Dict")
        annotation, factory = f"Dict[{key_type}, {value_type}]", "dict"
    elif proto.label == FieldLabel.LABEL_REPEATED:
        elem, kind = element_type(ctx, proto)
        typing_name(ctx, "List")
        annotation, factory = f"List[{elem}]", "list"
    elif proto.type in (FieldType.TYPE_MESSAGE, FieldType.TYPE_GROUP):
        elem, kind = element_type(ctx, proto)
        annotation = _optional(ctx, elem)
    elif proto.proto3_optional:
        elem, kind = element_type(ctx, proto)
        annotation = _optional(ctx, elem)
    elif proto.type == FieldType.TYPE_ENUM:
        annotation, kind = element_type(ctx, proto)
        default = _enum_default(ctx, proto)
    else:
        annotation, kind = element_type(ctx, proto)
        default = _scalar_default(annotation, proto)

    return SimpleField(
        name=name,
        proto_name=proto.name,
        type=annotation,
        default=default,
        default_factory=factory,
        tag=_tag(proto, comment, kind),
        path=path,
        comment=comment_lines(comment, "    "),
        deprecated=proto.options.deprecated,
    )


def _optional(ctx: CompilationContext, annotation: str) -> str:
    if annotation == "Any":
        return annotation
    typing_name(ctx, "Optional")
    return f"Optional[{annotation}]"


def _oneof_field(
    ctx: CompilationContext, msg: Message, index: int, names: FieldNames
) -> OneofField:
    oneof = msg.proto.oneof_decl[index]
    out = OneofField(name=oneof.name, getter=names.getters[index], proto_name=oneof.name)
    for i, proto in enumerate(msg.proto.field):
        if not proto.HasField("oneof_index") or proto.oneof_index != index:
            continue
        path = f"{msg.path},{MESSAGE_FIELD_PATH},{i}"
        comment = _comment(ctx, path)
        elem, kind = element_type(ctx, proto)
        out.sub_fields.append(
            OneofSubField(
                name=names.fields[i],
                proto_name=proto.name,
                type=_optional(ctx, elem),
                tag=_tag(proto, comment, kind),
                path=path,
                oneof=oneof.name,
                comment=comment_lines(comment, "    "),
                deprecated=proto.options.deprecated,
            )
        )
    return out


def message_fields(
    ctx: CompilationContext, msg: Message, names: FieldNames
) -> list[TopLevelField]:
    """Fields of ``msg`` in declaration order; a oneof sits at its first member."""
    fields: list[TopLevelField] = []
    seen_oneofs: set[int] = set()
    for i, proto in enumerate(msg.proto.field):
        if proto.HasField("oneof_index") and not proto.proto3_optional:
            if proto.oneof_index not in seen_oneofs:
                seen_oneofs.add(proto.oneof_index)
                fields.append(_oneof_field(ctx, msg, proto.oneof_index, names))
            continue
        path = f"{msg.path},{MESSAGE_FIELD_PATH},{i}"
        fields.append(_simple_field(ctx, proto, path, names.fields[i]))
    return fields


def _field_call(ctx: CompilationContext, f: SimpleField | OneofSubField) -> str:
    args = [f'"{f.tag.json_name}"', f'form="{f.tag.form_name}"']
    if isinstance(f, OneofSubField):
        args.append(f'oneof="{f.oneof}"')
        args.append("default=None")
    elif f.default_factory:
        args.append(f"default_factory={f.default_factory}")
    else:
        args.append(f"default={f.default}")
    if not f.tag.omit_empty:
        args.append("omitempty=False")
    if f.tag.kind:
        args.append(f'kind="{f.tag.kind}"')
    return f"{runtime_ref(ctx)}.field({', '.join(args)})"


def declaration_lines(ctx: CompilationContext, f: TopLevelField) -> list[str]:
    """Class body lines declaring ``f``."""
    match f:
        case SimpleField() | OneofSubField():
            line = f"    {f.name}: {f.type} = {_field_call(ctx, f)}"
            if f.deprecated:
                line += "  " + DEPRECATION_COMMENT
            return [*f.comment, line]
        case OneofField():
            lines = list(f.comment)
            for sub in f.sub_fields:
                lines.extend(declaration_lines(ctx, sub))
            return lines


def getter_lines(ctx: CompilationContext, f: TopLevelField) -> list[str]:
    """Accessor methods generated for ``f``; only oneofs have one."""
    match f:
        case OneofField():
            typing_name(ctx, "Optional")
            return [
                f"    def {f.getter}(self) -> Optional[str]:",
                f'        """Name of the member of {f.proto_name} that is set, if any."""',
                f'        return {runtime_ref(ctx)}.which_oneof(self, "{f.proto_name}")',
            ]
        case _:
            return []


def _enum_view(ctx: CompilationContext, enum: Enum) -> EnumView:
    name = class_name(enum)
    members = []
    for i, value in enumerate(enum.proto.value):
        comment = ctx.file.comments.get(f"{enum.path},{ENUM_VALUE_PATH},{i}")
        members.append(
            (
                enum_member(value.name),
                value.number,
                comment_lines(comment, "    "),
                value.options.deprecated,
            )
        )
    constants = [
        (const, f"{name}.{member[0]}") for const, member in zip(value_names(enum), members)
    ]
    return EnumView(
        name=name,
        comment=comment_lines(ctx.file.comments.get(enum.path)),
        deprecated=enum.deprecated,
        members=members,
        constants=constants,
    )


def _message_view(ctx: CompilationContext, msg: Message, names: FieldNames) -> MessageView:
    view = MessageView(
        name=class_name(msg),
        comment=comment_lines(ctx.file.comments.get(msg.path)),
        deprecated=msg.deprecated,
    )
    view.fields = message_fields(ctx, msg, names)
    return view


def _alias_lines(ctx: CompilationContext) -> list[str]:
    """``Name = module.Name`` for every symbol re-exported by a public import."""
    lines: list[str] = []
    for sym in ctx.file.imported:
        obj = sym.obj
        if obj.file.name.startswith(OPAQUE_PREFIXES):
            continue
        names = obj.file.exported.get(obj, [])
        if not names:
            continue
        alias = ctx.imports.use_module(module_path(ctx, obj.file, "model"), module_alias(obj.file))
        lines.extend(f"{name} = {alias}.{name}" for name in names)
    return lines


def render(ctx: CompilationContext) -> str:
    """Render the model module of ``ctx.file``."""
    file = ctx.file

    # Attribute names are allocated before any module alias; aliases avoid them.
    declared = [msg for msg in file.messages if not msg.is_map_entry]
    exported = {name for names in file.exported.values() for name in names}
    names = {msg: field_names(msg, exported) for msg in declared}
    for msg_names in names.values():
        ctx.imports.reserved.update(msg_names.all())

    aliases = _alias_lines(ctx)
    enums = [_enum_view(ctx, enum) for enum in file.enums]
    if enums:
        ctx.imports.use_name("enum", "IntEnum")

    messages = [_message_view(ctx, msg, names[msg]) for msg in declared]
    bodies = []
    for view in messages:
        lines: list[str] = []
        for f in view.fields:
            lines.extend(declaration_lines(ctx, f))
        for f in view.fields:
            getter = getter_lines(ctx, f)
            if getter:
                lines.append("")
                lines.extend(getter)
        bodies.append(lines or ["    pass"])
    if messages:
        ctx.imports.use_name("dataclasses", "dataclass")

    extensions = [
        ExtensionView(
            name=extension_name(ext),
            extendee=ext.proto.extendee,
            number=ext.proto.number,
            full_name=full_name(ext).lstrip("."),
        )
        for ext in all_extensions(file)
    ]

    router = runtime_ref(ctx) if messages or extensions else ""

    return template.render(
        header=header_lines(ctx),
        imports=ctx.imports.lines(),
        aliases=aliases,
        enums=enums,
        messages=list(zip(messages, bodies)),
        extensions=extensions,
        router=router,
        deprecation_comment=DEPRECATION_COMMENT,
    )
