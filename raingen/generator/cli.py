"""Command-line interface: the protoc plugin and its companion commands."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import NoReturn

import click
from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import DecodeError
from rich.console import Console
from rich.table import Table

from raingen.generator import api, generate
from raingen.generator.directives import Binding, parse_directives
from raingen.generator.errors import AnnotationError, GenerationError, InputError
from raingen.generator.wrapper import wrap_file

PROGRAM = "protoc-gen-rain"

stderr = Console(stderr=True, highlight=False)


def fail(err: Exception) -> NoReturn:
    stderr.print(f"{PROGRAM}: error: {err}", markup=False, soft_wrap=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option(
    "--error-code",
    envvar="GEN_ERROR_CODE",
    type=int,
    default=500,
    show_default=True,
    help="Code of the error envelope generated routes return.",
)
@click.pass_context
def cli(ctx: click.Context, error_code: int) -> None:
    """Rain code generator.

    Without a command, runs as a protoc plugin: reads a CodeGeneratorRequest
    on stdin and writes the CodeGeneratorResponse to stdout.
    """
    ctx.obj = error_code
    if ctx.invoked_subcommand is None:
        data = click.get_binary_stream("stdin").read()
        try:
            request = _parse_request(data)
            response = generate(request, error_code=error_code)
        except GenerationError as e:
            fail(e)
        out = click.get_binary_stream("stdout")
        out.write(response.SerializeToString())
        out.flush()


def _parse_request(data: bytes) -> plugin_pb2.CodeGeneratorRequest:
    try:
        return plugin_pb2.CodeGeneratorRequest.FromString(data)
    except DecodeError as e:
        raise InputError(f"parsing input proto: {e}") from e


def _read_descriptor_set(input_file: str) -> descriptor_pb2.FileDescriptorSet:
    try:
        return descriptor_pb2.FileDescriptorSet.FromString(Path(input_file).read_bytes())
    except DecodeError as e:
        raise InputError(f"parsing descriptor set {input_file}: {e}") from e


@cli.command()
@click.option(
    "--input", "-i", "input_file", required=True, help="Descriptor set written by protoc -o"
)
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option(
    "--file",
    "-f",
    "files",
    multiple=True,
    help="Schema file to generate (repeatable). Default: every file not under google/",
)
@click.option("--parameter", "-p", default="", help="Plugin parameter string, e.g. repo=app")
@click.pass_obj
def gen(
    error_code: int, input_file: str, output_path: str, files: tuple[str, ...], parameter: str
) -> None:
    """Generate code from a descriptor set without going through protoc."""
    try:
        descriptor_set = _read_descriptor_set(input_file)
        request = plugin_pb2.CodeGeneratorRequest(parameter=parameter)
        request.proto_file.extend(descriptor_set.file)
        if files:
            request.file_to_generate.extend(files)
        else:
            request.file_to_generate.extend(
                f.name for f in descriptor_set.file if not f.name.startswith("google/")
            )
        response = generate(request, error_code=error_code)
    except GenerationError as e:
        fail(e)

    for generated in response.file:
        target = Path(output_path) / generated.name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(generated.content, encoding="utf-8")
        print(f"Generated {target}")


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="router", help="Runtime package name")
def runtime(output_path: str, name: str) -> None:
    """Write the router runtime package generated API modules import."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in api.runtime().items():
        (runtime_dir / filename).write_text(content)
    print(f"Generated router runtime in {runtime_dir}")


@cli.command()
@click.option(
    "--input", "-i", "input_file", required=True, help="Descriptor set written by protoc -o"
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display the messages, enums and HTTP routes of a descriptor set."""
    try:
        descriptor_set = _read_descriptor_set(input_file)
        data = [_file_info(proto) for proto in descriptor_set.file]
    except GenerationError as e:
        fail(e)

    if output_json:
        print(json.dumps(data, indent=2))
    else:
        _output_plain(data)


def _file_info(proto: descriptor_pb2.FileDescriptorProto) -> dict:
    file = wrap_file(proto)
    routes = []
    for service in file.services:
        for method in service.methods:
            directives = parse_directives(file.comments.get(method.path, ""))
            try:
                http_method, path, no_json = api.http_rule(service, method)
            except AnnotationError:
                http_method, path, no_json = "", "", False
            binding = Binding.QUERY if http_method == "GET" else directives.binding
            routes.append(
                {
                    "service": service.name,
                    "method": method.name,
                    "http_method": http_method,
                    "path": path,
                    "binding": binding.value,
                    "middleware": directives.middlewares,
                    "envelope": not no_json,
                }
            )
    return {
        "name": file.name,
        "package": file.package,
        "messages": [
            ".".join(msg.type_name()) for msg in file.messages if not msg.is_map_entry
        ],
        "enums": [".".join(enum.type_name()) for enum in file.enums],
        "routes": routes,
    }


def _output_plain(data: list[dict]) -> None:
    """Output descriptor set info using rich text formatting."""
    console = Console()

    for file in data:
        console.print(f"[bold cyan]{file['name']}[/bold cyan]")

        file_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
        file_table.add_column("Label", style="dim")
        file_table.add_column("Value", style="white")
        file_table.add_row("Package", file["package"] or "-")
        file_table.add_row("Messages", ", ".join(file["messages"]) or "-")
        file_table.add_row("Enums", ", ".join(file["enums"]) or "-")
        console.print(file_table)

        if file["routes"]:
            route_table = Table(show_header=True, box=None, padding=(0, 2, 0, 2))
            route_table.add_column("Route", style="white")
            route_table.add_column("Method", style="yellow")
            route_table.add_column("Path", style="green")
            route_table.add_column("Binding", style="dim")
            route_table.add_column("Middleware", style="dim")
            for route in file["routes"]:
                route_table.add_row(
                    f"{route['service']}.{route['method']}",
                    route["http_method"] or "[red]missing[/red]",
                    route["path"],
                    route["binding"],
                    ",".join(route["middleware"]),
                )
            console.print(route_table)
        console.print()


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
