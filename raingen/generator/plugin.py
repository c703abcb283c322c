"""The generator pipeline: one request in, one response out."""

from google.protobuf.compiler import plugin_pb2

from . import api, model
from .context import CompilationContext
from .errors import InputError
from .exporter import export_symbols, wrap_imported
from .formatter import format_source
from .manifest import update_manifest
from .resolver import build_name_index, output_name, set_package_names
from .wrapper import wrap_types


def generate(
    request: plugin_pb2.CodeGeneratorRequest,
    *,
    error_code: int = 500,
    write_manifest: bool = True,
) -> plugin_pb2.CodeGeneratorResponse:
    """Generate the model and API modules of every file to generate.

    Any failure raises a :class:`~raingen.generator.errors.GenerationError`
    before the response or the handler manifest is produced.
    """
    if not request.file_to_generate:
        raise InputError("no files to generate")

    ctx = CompilationContext.from_request(request, error_code=error_code)
    ctx.response.supported_features = plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL
    wrap_types(ctx)
    set_package_names(ctx)
    build_name_index(ctx)
    export_symbols(ctx)
    wrap_imported(ctx)

    for file in ctx.gen_files:
        for kind, render in (("model", model.render), ("api", api.render)):
            ctx.begin_file(file)
            content = format_source(render(ctx))
            ctx.response.file.add(name=output_name(ctx, file, kind), content=content)

    if write_manifest and ctx.manifest:
        update_manifest(ctx.params.manifest_dir, ctx.manifest)

    return ctx.response
