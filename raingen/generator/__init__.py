"""protoc plugin generating dataclass models and Flask route bindings."""

from .errors import *
from .plugin import generate as generate
