from __future__ import annotations


class ResolutionError(Exception):
    """Base class for every error raised by the container."""


class InvalidArgument(ResolutionError, TypeError):
    pass


class IncompleteImplementation(ResolutionError, TypeError):
    pass


class InvalidFormat(ResolutionError, ValueError):
    pass


class ModuleNotFound(ResolutionError, ImportError):
    """A namespace, alias target, autoloaded file or package could not be found."""


class MethodNotFound(ResolutionError, AttributeError):
    pass


class MaxDepthExceeded(ResolutionError, RecursionError):
    """Resolution nested deeper than the container allows, usually a dependency cycle."""

    def __init__(self, chain: list[str], max_depth: int) -> None:
        self.chain = chain
        self.max_depth = max_depth
        msg = f"Maximum resolution depth ({max_depth}) exceeded: {' -> '.join(chain)}"
        super().__init__(msg)
