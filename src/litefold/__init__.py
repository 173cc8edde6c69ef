"""Namespace based IoC container.

This package provides a small inversion-of-control container for Python,
mapping namespaces like ``App/Cache`` to factories, singletons, manager
definitions with named extensions, or source files under autoloaded
directories, and constructing classes with their dependencies injected.

Exports:
- `Container`: the registry and resolution engine (`bind`, `singleton`,
  `manager`, `extend`, `alias`, `autoload`, `add_hook`, `use`, `make`,
  `make_func`).
- `ModuleLoader`: default loader for autoloaded files and installed packages.
- `MethodRef`: instance/method pair returned by `Container.make_func`.
- Errors, all subclasses of `ResolutionError`.
"""

from ._container import Binding, Container, Extension, MethodRef
from ._errors import (
    IncompleteImplementation,
    InvalidArgument,
    InvalidFormat,
    MaxDepthExceeded,
    MethodNotFound,
    ModuleNotFound,
    ResolutionError,
)
from ._loader import ModuleLoader


__all__ = [
    "Binding",
    "Container",
    "Extension",
    "IncompleteImplementation",
    "InvalidArgument",
    "InvalidFormat",
    "MaxDepthExceeded",
    "MethodNotFound",
    "MethodRef",
    "ModuleLoader",
    "ModuleNotFound",
    "ResolutionError",
]
