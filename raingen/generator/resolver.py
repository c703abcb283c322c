"""Package identities, import paths and the global type name index."""

import posixpath

from .context import CompilationContext
from .errors import ConsistencyError
from .params import PathType
from .types import Enum, Message, Object, SchemaFile
from .util import base_name, clean_package_name, dotted_slice, safe_identifier


def _as_module_path(path: str) -> str:
    """``github.com/acme/api`` style paths become dotted package paths."""
    return path.strip("/").replace("/", ".")


def assign_import_paths(ctx: CompilationContext) -> None:
    """Compute the import path of every wrapped file.

    First match wins: an ``M<file>=<path>`` parameter, the ``import_path``
    parameter (files to generate only), the ``go_package`` option, and finally
    the directory of the file name.
    """
    gen_names = set(ctx.request.file_to_generate)
    params = ctx.params
    for file in ctx.files:
        if file.name in params.import_map:
            path = params.import_map[file.name]
        elif file.name in gen_names and params.import_path:
            path = params.import_path
        elif option_path := file.package_option()[0]:
            path = option_path
        else:
            path = posixpath.dirname(file.name)
        file.import_path = _as_module_path(path)


def _default_package_name(ctx: CompilationContext) -> str:
    """Package name derived from the ``import_path`` parameter."""
    path = ctx.params.import_path.replace(".", "/")
    return clean_package_name(path.rsplit("/", 1)[-1]) if path else ""


def set_package_names(ctx: CompilationContext) -> None:
    """Name the package of every file to generate and check they agree.

    First match wins: the ``go_package`` option, a ``go_package`` option of
    another file with the same import path, the ``import_path`` parameter, the
    declared proto package, and the file's base name.
    """
    assign_import_paths(ctx)

    by_import_path: dict[str, str] = {}
    for file in ctx.gen_files:
        _, name, ok = file.package_option()
        if ok:
            by_import_path[file.import_path] = clean_package_name(name)

    for file in ctx.gen_files:
        _, name, ok = file.package_option()
        if ok:
            file.package_name = clean_package_name(name)
        elif file.import_path in by_import_path:
            file.package_name = by_import_path[file.import_path]
        elif default := _default_package_name(ctx):
            file.package_name = default
        elif file.package:
            file.package_name = clean_package_name(file.package)
        else:
            file.package_name = clean_package_name(base_name(file.name))

    first = ctx.gen_files[0]
    for file in ctx.gen_files[1:]:
        if first.import_path != file.import_path:
            raise ConsistencyError(
                f"inconsistent package import paths: {first.import_path}, {file.import_path}"
            )
        if first.package_name != file.package_name:
            raise ConsistencyError(
                f"inconsistent package names: {first.package_name}, {file.package_name}"
            )


def build_name_index(ctx: CompilationContext) -> None:
    """Index every message and enum of every file by fully-qualified name.

    Keys follow the input syntax: ``.pkg.Outer.Inner``, or ``.Outer.Inner``
    for files without a package.
    """
    ctx.type_index = {}
    for file in ctx.files:
        dotted_pkg = f".{file.package}." if file.package else "."
        objects: list[Message | Enum] = [*file.enums, *file.messages]
        for obj in objects:
            name = dotted_pkg + dotted_slice(obj.type_name())
            if name in ctx.type_index:
                raise ConsistencyError(f"duplicate type name {name} in {file.name}")
            ctx.type_index[name] = obj


def full_name(obj: Object) -> str:
    package = obj.file.package
    prefix = f".{package}." if package else "."
    return prefix + dotted_slice(obj.type_name())


def _module_leaf(file: SchemaFile, kind: str) -> str:
    return f"{safe_identifier(base_name(file.name))}_{kind}"


def output_dir(ctx: CompilationContext, file: SchemaFile) -> str:
    if ctx.params.paths == PathType.SOURCE_RELATIVE:
        return posixpath.dirname(file.name)
    return file.import_path.replace(".", "/")


def output_name(ctx: CompilationContext, file: SchemaFile, kind: str) -> str:
    """Name of the generated ``kind`` ("model" or "api") file for ``file``."""
    name = f"{_module_leaf(file, kind)}.py"
    directory = output_dir(ctx, file)
    return f"{directory}/{name}" if directory else name


def module_path(ctx: CompilationContext, file: SchemaFile, kind: str) -> str:
    """Dotted module generated code imports the ``kind`` module of ``file`` from."""
    package = (ctx.params.import_prefix + file.import_path).strip(".")
    leaf = _module_leaf(file, kind)
    return f"{package}.{leaf}" if package else leaf


def module_alias(file: SchemaFile) -> str:
    """Preferred local alias for a file's model module."""
    return clean_package_name(base_name(file.name))
