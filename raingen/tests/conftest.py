"""Unit tests configuration file."""

import importlib
import os
import sys

import pytest
from google.api import annotations_pb2  # noqa: F401  registers google.api.http
from google.protobuf import descriptor_pb2, empty_pb2, struct_pb2, text_format
from google.protobuf.compiler import plugin_pb2

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


def schema(text: str) -> descriptor_pb2.FileDescriptorProto:
    """Parse a FileDescriptorProto written in text format."""
    return text_format.Parse(text, descriptor_pb2.FileDescriptorProto())


def schema_file(name: str) -> descriptor_pb2.FileDescriptorProto:
    """Load ``schemas/<name>.textproto``."""
    with open(f"{FILE_DIR}/schemas/{name}.textproto", encoding="utf-8") as f:
        return schema(f.read())


def well_known(module) -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto()
    module.DESCRIPTOR.CopyToProto(proto)
    return proto


def build_request(*files, generate=None, parameter="runtime=raingen.router"):
    """A CodeGeneratorRequest holding the well-known files plus ``files``.

    Files are FileDescriptorProtos, text format strings, or names of files
    under ``schemas/``. By default every given file is generated.
    """
    protos = []
    for f in files:
        if isinstance(f, descriptor_pb2.FileDescriptorProto):
            protos.append(f)
        elif "\n" in f:
            protos.append(schema(f))
        else:
            protos.append(schema_file(f))

    request = plugin_pb2.CodeGeneratorRequest(parameter=parameter)
    request.proto_file.extend([well_known(empty_pb2), well_known(struct_pb2), *protos])
    names = generate if generate is not None else [p.name for p in protos]
    request.file_to_generate.extend(names)
    return request


@pytest.fixture
def parse_schema():
    return schema


@pytest.fixture
def codegen_request():
    return build_request


@pytest.fixture
def load_generated(tmp_path, monkeypatch):
    """Write a CodeGeneratorResponse to disk and import its modules.

    Generated packages are dropped from sys.modules afterwards, so each test
    imports its own copy.
    """
    loaded: list[str] = []

    def load(response, module):
        for f in response.file:
            target = tmp_path / f.name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(f.content)
        monkeypatch.syspath_prepend(str(tmp_path))
        importlib.invalidate_caches()
        mod = importlib.import_module(module)
        tops = {f.name.split("/", 1)[0] for f in response.file}
        loaded.extend(name for name in sys.modules if name.split(".", 1)[0] in tops)
        return mod

    yield load

    for name in loaded:
        sys.modules.pop(name, None)
