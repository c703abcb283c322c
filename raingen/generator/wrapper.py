"""Wrap the flat descriptor lists of a request into the object graph."""

import weakref

from google.protobuf import descriptor_pb2

from .context import CompilationContext
from .errors import ConsistencyError
from .types import (
    ENUM_PATH,
    MESSAGE_ENUM_PATH,
    MESSAGE_MESSAGE_PATH,
    MESSAGE_PATH,
    SERVICE_METHOD_PATH,
    SERVICE_PATH,
    Enum,
    Extension,
    FieldType,
    Message,
    Method,
    SchemaFile,
    Service,
)


def wrap_types(ctx: CompilationContext) -> None:
    """Wrap every file of the request and select the files to generate.

    Must run before the resolver and the emitters.
    """
    ctx.files = []
    ctx.files_by_name = {}
    for proto in ctx.request.proto_file:
        file = wrap_file(proto)
        ctx.files.append(file)
        ctx.files_by_name[file.name] = file

    ctx.gen_files = [ctx.file_by_name(name) for name in ctx.request.file_to_generate]


def wrap_file(proto: descriptor_pb2.FileDescriptorProto) -> SchemaFile:
    file = SchemaFile(proto=proto)
    # Messages must be wrapped before enums, which refer to them by arena id.
    file.messages = _wrap_messages(file)
    _build_nested_messages(file)
    file.enums = _wrap_enums(file)
    _build_nested_enums(file)
    file.extensions = _wrap_extensions(file)
    file.services = _wrap_services(file)
    file.comments = _extract_comments(proto)
    return file


def _wrap_messages(file: SchemaFile) -> list[Message]:
    # The arena is attached up front so parents resolve while wrapping.
    arena: list[Message] = []
    file.messages = arena
    for i, desc in enumerate(file.proto.message_type):
        _wrap_message(arena, desc, None, file, i)
    return arena


def _wrap_message(
    arena: list[Message],
    desc: descriptor_pb2.DescriptorProto,
    parent: Message | None,
    file: SchemaFile,
    index: int,
) -> None:
    if parent is None:
        path = f"{MESSAGE_PATH},{index}"
    else:
        path = f"{parent.path},{MESSAGE_MESSAGE_PATH},{index}"

    msg = Message(
        _file_ref=weakref.ref(file),
        proto=desc,
        arena_id=len(arena),
        index=index,
        parent_id=parent.arena_id if parent is not None else None,
        path=path,
    )
    arena.append(msg)

    # The only way to tell a group from a message is whether the containing
    # message has a TYPE_GROUP field naming it.
    if parent is not None:
        full_name = _full_name(file, msg.type_name())
        msg.group = any(
            f.type == FieldType.TYPE_GROUP and f.type_name == full_name for f in parent.proto.field
        )

    msg.extensions = [
        Extension(_file_ref=weakref.ref(file), proto=ext, parent_id=msg.arena_id)
        for ext in desc.extension
    ]

    for i, nested in enumerate(desc.nested_type):
        _wrap_message(arena, nested, msg, file, i)


def _full_name(file: SchemaFile, parts: list[str]) -> str:
    if file.package:
        parts = [file.package, *parts]
    return "." + ".".join(parts)


def _build_nested_messages(file: SchemaFile) -> None:
    for msg in file.messages:
        if not msg.proto.nested_type:
            continue
        msg.nested_ids = [m.arena_id for m in file.messages if m.parent_id == msg.arena_id]
        if len(msg.nested_ids) != len(msg.proto.nested_type):
            raise ConsistencyError(f"internal error: nesting failure for {msg.name}")


def _wrap_enums(file: SchemaFile) -> list[Enum]:
    enums: list[Enum] = []
    for i, desc in enumerate(file.proto.enum_type):
        enums.append(
            Enum(
                _file_ref=weakref.ref(file),
                proto=desc,
                arena_id=len(enums),
                index=i,
                parent_id=None,
                path=f"{ENUM_PATH},{i}",
            )
        )
    # Enums of every message, however deeply nested, join the file-level list.
    for msg in file.messages:
        for i, desc in enumerate(msg.proto.enum_type):
            enums.append(
                Enum(
                    _file_ref=weakref.ref(file),
                    proto=desc,
                    arena_id=len(enums),
                    index=i,
                    parent_id=msg.arena_id,
                    path=f"{msg.path},{MESSAGE_ENUM_PATH},{i}",
                )
            )
    return enums


def _build_nested_enums(file: SchemaFile) -> None:
    for msg in file.messages:
        if not msg.proto.enum_type:
            continue
        msg.enum_ids = [e.arena_id for e in file.enums if e.parent_id == msg.arena_id]
        if len(msg.enum_ids) != len(msg.proto.enum_type):
            raise ConsistencyError(f"internal error: enum nesting failure for {msg.name}")


def _wrap_extensions(file: SchemaFile) -> list[Extension]:
    return [
        Extension(_file_ref=weakref.ref(file), proto=ext, parent_id=None)
        for ext in file.proto.extension
    ]


def _wrap_services(file: SchemaFile) -> list[Service]:
    services: list[Service] = []
    for i, desc in enumerate(file.proto.service):
        path = f"{SERVICE_PATH},{i}"
        methods = [
            Method(proto=m, index=j, path=f"{path},{SERVICE_METHOD_PATH},{j}")
            for j, m in enumerate(desc.method)
        ]
        services.append(Service(proto=desc, index=i, path=path, methods=methods))
    return services


def _extract_comments(proto: descriptor_pb2.FileDescriptorProto) -> dict[str, str]:
    comments: dict[str, str] = {}
    for loc in proto.source_code_info.location:
        if not loc.HasField("leading_comments"):
            continue
        comments[",".join(str(n) for n in loc.path)] = loc.leading_comments
    return comments
