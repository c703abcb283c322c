"""API pass: handler protocols and Flask route registration for each service."""

import json
import posixpath
import re
from dataclasses import dataclass, field
from importlib import resources

from google.api import annotations_pb2
from jinja2 import Environment, PackageLoader

from .context import GENERATED_NAMES, CompilationContext
from .directives import Binding, parse_directives
from .emit import (
    EMPTY_TYPE,
    OPAQUE_PREFIXES,
    WELL_KNOWN_TYPES,
    comment_lines,
    header_lines,
    message_ref,
    runtime_ref,
)
from .errors import AnnotationError
from .resolver import output_name
from .types import Message, Method, Service
from .util import safe_identifier, to_camel_case, to_snake_case

env = Environment(
    loader=PackageLoader("raingen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("api.py.j2")

# {name} and {name=*} become <name>, {name=**} becomes <path:name>.
_TEMPLATE_VAR = re.compile(r"\{([A-Za-z_][\w.]*)(?:=([^}]*))?\}")
# Colon and star segments, as in /users/:id and /static/*filepath.
_COLON_VAR = re.compile(r"(?<=/):([A-Za-z_]\w*)")
_STAR_VAR = re.compile(r"(?<=/)\*([A-Za-z_]\w*)")


@dataclass
class MethodView:
    name: str
    view: str
    input: str
    output: str
    http_method: str
    path: str
    endpoint: str
    bind: bool
    bind_check: bool
    binding: str
    no_json: bool
    middlewares: list[str] = field(default_factory=list)
    comment: list[str] = field(default_factory=list)


@dataclass
class ServiceView:
    name: str
    snake: str
    methods: list[MethodView] = field(default_factory=list)


def flask_path(path: str) -> str:
    """Convert an HTTP rule path template into a Flask URL rule."""

    def var(match: re.Match[str]) -> str:
        name = match.group(1).replace(".", "_")
        if match.group(2) and "**" in match.group(2):
            return f"<path:{name}>"
        return f"<{name}>"

    path = _TEMPLATE_VAR.sub(var, path)
    path = _COLON_VAR.sub(r"<\1>", path)
    return _STAR_VAR.sub(r"<path:\1>", path)


def http_rule(service: Service, method: Method) -> tuple[str, str, bool]:
    """Return ``(http method, path, no_json)`` of the method's HTTP mapping.

    Exactly one of ``get`` or ``post`` must be set.
    """
    options = method.proto.options
    if method.proto.HasField("options") and options.HasExtension(annotations_pb2.http):
        rule = options.Extensions[annotations_pb2.http]
        pattern = rule.WhichOneof("pattern")
        if pattern in ("get", "post"):
            no_json = rule.response_body not in ("", "json")
            return pattern.upper(), getattr(rule, pattern), no_json
    raise AnnotationError(f"http mapping not found: {service.name}.{method.name}")


def _io_type(ctx: CompilationContext, type_name: str, service: Service, method: Method) -> str:
    ref = message_ref(ctx, type_name, local=False)
    if type_name in WELL_KNOWN_TYPES or ref == "Any":
        raise AnnotationError(
            f"unsupported request or response type {type_name} for {service.name}.{method.name}"
        )
    return ref


def need_bind(ctx: CompilationContext, type_name: str) -> bool:
    """Whether the request must be decoded into the input message."""
    if type_name == EMPTY_TYPE:
        return False
    obj = ctx.object_named(type_name)
    if obj.file.name.startswith(OPAQUE_PREFIXES):
        return False
    return not (isinstance(obj, Message) and len(obj.proto.field) == 0)


class _Names:
    """Allocates the local names of one generated function or class."""

    def __init__(self, reserved: set[str]) -> None:
        self.used = set(reserved)

    def __call__(self, name: str) -> str:
        name = safe_identifier(name)
        while name in self.used:
            name += "_"
        self.used.add(name)
        return name


def _method_view(
    ctx: CompilationContext,
    service: Service,
    method: Method,
    handler_names: _Names,
    view_names: _Names,
) -> MethodView:
    comment = ctx.file.comments.get(method.path, "")
    directives = parse_directives(comment)
    http_method, path, no_json = http_rule(service, method)

    binding = directives.binding
    if http_method == "GET":
        # GET always binds from the query string, whatever the directive says.
        binding = Binding.QUERY

    snake = to_snake_case(method.name)
    prefix = f"{ctx.file.package}." if ctx.file.package else ""
    return MethodView(
        name=handler_names(snake),
        view=view_names(f"{snake}_view"),
        input=_io_type(ctx, method.proto.input_type, service, method),
        output=_io_type(ctx, method.proto.output_type, service, method),
        http_method=http_method,
        path=json.dumps(flask_path(path)),
        endpoint=json.dumps(f"{prefix}{service.name}.{method.name}"),
        bind=need_bind(ctx, method.proto.input_type),
        bind_check=directives.bind_check,
        binding=binding.name,
        no_json=no_json,
        middlewares=directives.middlewares,
        comment=comment_lines(comment, "    "),
    )


def _service_view(ctx: CompilationContext, service: Service) -> ServiceView:
    handler_names = _Names(set())
    view_names = _Names(set(GENERATED_NAMES) | ctx.imports.used_aliases)
    view = ServiceView(name=to_camel_case(service.name), snake=to_snake_case(service.name))
    for method in service.methods:
        view.methods.append(_method_view(ctx, service, method, handler_names, view_names))
    return view


def manifest_entry(ctx: CompilationContext, service: Service) -> tuple[str, str]:
    """Handler manifest key and value for ``service``: ``<dir>/<Service>`` -> ``<dir>``."""
    directory = posixpath.dirname(output_name(ctx, ctx.file, "api")) or "."
    return f"{directory}/{to_camel_case(service.name)}", directory


def render(ctx: CompilationContext) -> str:
    """Render the API module of ``ctx.file``; files without services get only a header."""
    file = ctx.file

    services = [_service_view(ctx, service) for service in file.services]
    router = ""
    if services:
        router = runtime_ref(ctx)
        ctx.imports.use_name("typing", "Protocol")
        ctx.imports.use_name("flask", "Flask")
        for service in file.services:
            key, value = manifest_entry(ctx, service)
            ctx.manifest[key] = value

    return template.render(
        header=header_lines(ctx),
        imports=ctx.imports.lines(),
        services=services,
        router=router,
        error_code=ctx.error_code,
        json=json.dumps,
    )


RUNTIME_FILES = [
    "__init__.py",
    "model.py",
    "response.py",
    "binding.py",
    "router.py",
]


def runtime() -> dict[str, str]:
    """Return the router runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("raingen.router").joinpath(filename).read_text()
        result[filename] = content
    return result
