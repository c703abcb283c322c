"""State of one generator run."""

from __future__ import annotations

import keyword
from dataclasses import dataclass, field

from google.protobuf.compiler import plugin_pb2

from .errors import EmissionError, ResolutionError
from .params import Parameters, parse_parameters
from .types import Enum, Message, SchemaFile
from .util import BUILTIN_NAMES

# Names the generated modules bind themselves; module aliases must avoid them.
GENERATED_NAMES = frozenset(
    [
        "annotations",
        "dataclass",
        "IntEnum",
        "Any",
        "Dict",
        "List",
        "Optional",
        "Protocol",
        "Flask",
        "router",
        "app",
        "h",
        "ctx",
        "err",
        "input_",
        "output",
        "params",
    ]
)


@dataclass
class ImportSet:
    """Modules referenced while emitting one file and the aliases they got."""

    aliases: dict[str, str] = field(default_factory=dict)
    # Names bound inside generated class bodies; an alias must not collide.
    reserved: set[str] = field(default_factory=set)
    used_aliases: set[str] = field(default_factory=set)
    used_modules: set[str] = field(default_factory=set)
    from_names: dict[str, set[str]] = field(default_factory=dict)

    def alias(self, module: str, preferred: str) -> str:
        """Return the alias for ``module``, allocating a free one if needed."""
        if module in self.aliases:
            return self.aliases[module]
        name = orig = preferred
        i = 1
        while (
            name in self.used_aliases
            or name in self.reserved
            or name in GENERATED_NAMES
            or name in BUILTIN_NAMES
            or keyword.iskeyword(name)
        ):
            name = f"{orig}{i}"
            i += 1
        self.aliases[module] = name
        self.used_aliases.add(name)
        return name

    def use_module(self, module: str, preferred: str) -> str:
        """Record that ``module`` is referenced and return its alias."""
        alias = self.alias(module, preferred)
        self.used_modules.add(module)
        return alias

    def use_name(self, module: str, name: str) -> str:
        """Record ``from module import name`` and return ``name``."""
        self.from_names.setdefault(module, set()).add(name)
        return name

    def use_runtime(self, module: str) -> str:
        """Record the runtime package import; it is always bound as ``router``."""
        self.aliases[module] = "router"
        self.used_modules.add(module)
        return "router"

    def lines(self) -> list[str]:
        """Import statements for everything used, unsorted."""
        out: list[str] = []
        for module, names in self.from_names.items():
            out.append(f"from {module} import {', '.join(sorted(names))}")
        for module in self.used_modules:
            alias = self.aliases[module]
            package, _, leaf = module.rpartition(".")
            if package:
                suffix = "" if leaf == alias else f" as {alias}"
                out.append(f"from {package} import {leaf}{suffix}")
            else:
                out.append(f"import {module}" if leaf == alias else f"import {module} as {alias}")
        return out


@dataclass
class CompilationContext:
    """Everything a run shares: the request, the wrapped files and the type index."""

    request: plugin_pb2.CodeGeneratorRequest
    params: Parameters
    error_code: int = 500
    files: list[SchemaFile] = field(default_factory=list)
    files_by_name: dict[str, SchemaFile] = field(default_factory=dict)
    gen_files: list[SchemaFile] = field(default_factory=list)
    type_index: dict[str, Message | Enum] = field(default_factory=dict)
    response: plugin_pb2.CodeGeneratorResponse = field(
        default_factory=plugin_pb2.CodeGeneratorResponse
    )
    # Per-file emission state, reset by begin_file().
    current_file: SchemaFile | None = None
    imports: ImportSet = field(default_factory=ImportSet)
    # Handler manifest entries, written once every file has been generated.
    manifest: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_request(
        cls, request: plugin_pb2.CodeGeneratorRequest, *, error_code: int = 500
    ) -> CompilationContext:
        return cls(
            request=request,
            params=parse_parameters(request.parameter),
            error_code=error_code,
        )

    @property
    def file(self) -> SchemaFile:
        """The schema file being emitted."""
        if self.current_file is None:
            raise EmissionError("no file is being emitted")
        return self.current_file

    def begin_file(self, file: SchemaFile) -> None:
        self.current_file = file
        self.imports = ImportSet()

    def file_by_name(self, name: str) -> SchemaFile:
        try:
            return self.files_by_name[name]
        except KeyError:
            raise ResolutionError(f"could not find file named {name}") from None

    def object_named(self, type_name: str) -> Message | Enum:
        """Look up a fully-qualified type name such as ``.pkg.Outer.Inner``."""
        try:
            return self.type_index[type_name]
        except KeyError:
            raise ResolutionError(f"can't find object with type {type_name}") from None
