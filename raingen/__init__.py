"""raingen - protoc plugin generating dataclass models and Flask route bindings."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("raingen")
except PackageNotFoundError:
    __version__ = "(local)"
