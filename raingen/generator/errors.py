"""Errors raised while generating code.

Every error is fatal: the plugin entry point reports it and exits without
writing a response.
"""


class GenerationError(RuntimeError):
    """Raised when code generation cannot continue."""


class InputError(GenerationError):
    """The request is unreadable or asks for nothing."""


class ConsistencyError(GenerationError):
    """The descriptor graph or the package layout is inconsistent."""


class ResolutionError(GenerationError):
    """A type or file name could not be resolved."""


class AnnotationError(GenerationError):
    """A method is missing its HTTP mapping."""


class EmissionError(GenerationError):
    """Generated source failed to parse or to reformat."""


class ManifestError(GenerationError):
    """The handler manifest exists but cannot be used."""
