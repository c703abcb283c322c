"""Plugin parameter parsing."""

from dataclasses import dataclass, field
from enum import StrEnum

from .errors import InputError


class PathType(StrEnum):
    """How output file names are derived."""

    IMPORT = "import"
    SOURCE_RELATIVE = "source_relative"


@dataclass
class Parameters:
    """Options passed to the plugin as ``key=value,key,...``."""

    raw: dict[str, str] = field(default_factory=dict)
    import_prefix: str = ""
    import_path: str = ""
    import_map: dict[str, str] = field(default_factory=dict)
    paths: PathType = PathType.IMPORT
    repo: str = ""
    manifest_dir: str = "."
    runtime: str = ""

    @property
    def runtime_module(self) -> str:
        """Module generated code imports the router runtime from."""
        if self.runtime:
            return self.runtime
        if self.repo:
            return f"{self.repo}.router"
        return "router"


def parse_parameters(parameter: str) -> Parameters:
    """Parse the request's parameter string."""
    params = Parameters()
    for chunk in parameter.split(","):
        if not chunk:
            continue
        key, sep, value = chunk.partition("=")
        params.raw[key] = value if sep else ""

    for key, value in params.raw.items():
        if key == "import_prefix":
            params.import_prefix = value
        elif key == "import_path":
            params.import_path = value
        elif key == "paths":
            try:
                params.paths = PathType(value)
            except ValueError:
                raise InputError(
                    f'Unknown path type "{value}": want "import" or "source_relative".'
                ) from None
        elif key == "repo":
            params.repo = value
        elif key == "path":
            params.manifest_dir = value or "."
        elif key == "runtime":
            params.runtime = value
        elif key.startswith("M") and len(key) > 1:
            params.import_map[key[1:]] = value

    if not params.import_prefix and params.repo:
        params.import_prefix = params.repo + "."

    return params
