from __future__ import annotations

import inspect
import logging
import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ._errors import (
    IncompleteImplementation,
    InvalidArgument,
    InvalidFormat,
    MaxDepthExceeded,
    MethodNotFound,
    ModuleNotFound,
)
from ._loader import ModuleLoader


if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from ._loader import Loader


logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

_MISSING: Any = object()
_METHOD_TARGET = re.compile(r"([^.]+)\.([^.]+)")


class Kind(Enum):
    DIRECT = "direct"
    AUTOLOAD = "autoload"
    EXTERNAL = "external"


@dataclass
class Binding:
    namespace: str
    closure: Callable[..., Any]
    singleton: bool = False
    cached_instance: Any = _MISSING  # filled by the first singleton resolution

    @property
    def is_cached(self) -> bool:
        return self.cached_instance is not _MISSING


@dataclass(frozen=True)
class Extension:
    namespace: str
    key: str
    callback: Callable[..., Any]


@dataclass(frozen=True)
class Target:
    kind: Kind
    namespace: str
    path: Path | None = None
    alias: str | None = None


@dataclass(frozen=True)
class MethodRef:
    """Instance and method name returned by `Container.make_func`."""

    instance: Any
    method: str

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return getattr(self.instance, self.method)(*args, **kwargs)


class Container:
    """IoC container.

    - bind factories and singletons to namespaces
    - managers that accept named extensions before their factory runs
    - autoload namespace prefixes from directories
    - aliases and post-resolution hooks
    - construct classes with their dependencies injected.
    """

    def __init__(self, *, loader: Loader | None = None, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 1:
            msg = f"max_depth must be a positive integer, got {max_depth!r}"
            raise InvalidArgument(msg)

        self._loader = loader if loader is not None else ModuleLoader()
        self._max_depth = max_depth
        self._bindings: dict[str, Binding] = {}
        self._managers: dict[str, Any] = {}
        self._extenders: dict[str, list[Extension]] = {}
        self._aliases: dict[str, str] = {}
        self._autoloads: dict[str, Path] = {}
        self._hooks: dict[str, list[Any]] = {}
        self._resolving: list[str] = []
        self._lock = threading.RLock()

    # -- registration --------------------------------------------------------

    def bind(self, namespace: str, factory: Callable[..., Any]) -> None:
        """Bind a factory to a namespace. Every `use` calls it again.

        The factory receives the container when it accepts a positional argument.
        """
        self._register_binding(namespace, factory, singleton=False, method="bind")

    def singleton(self, namespace: str, factory: Callable[..., Any]) -> None:
        """Bind a factory whose first result is cached and returned by every later `use`."""
        self._register_binding(namespace, factory, singleton=True, method="singleton")

    def _register_binding(self, namespace: str, factory: Callable[..., Any], *, singleton: bool, method: str) -> None:
        _check_namespace(namespace)
        if not callable(factory):
            msg = f"Invalid arguments, {method} expects a callback"
            raise InvalidArgument(msg)

        with self._lock:
            if namespace in self._bindings:
                logger.debug("Overwriting binding for '%s'", namespace)
            self._bindings[namespace] = Binding(namespace=namespace, closure=factory, singleton=singleton)

    def manager(self, namespace: str, definition: Any) -> None:
        _check_namespace(namespace)
        if not callable(getattr(definition, "extend", None)):
            msg = f"Incomplete implementation, manager for '{namespace}' must have an extend method"
            raise IncompleteImplementation(msg)

        with self._lock:
            self._managers[namespace] = definition

    def extend(self, namespace: str, key: str, callback: Callable[..., Any]) -> None:
        """Register a named extension (driver) for a manager namespace.

        Whether a manager exists is only checked when the namespace is resolved.
        """
        _check_namespace(namespace)
        if not callable(callback):
            msg = "Invalid arguments, extend expects a callback"
            raise InvalidArgument(msg)

        with self._lock:
            self._extenders.setdefault(namespace, []).append(
                Extension(namespace=namespace, key=key, callback=callback)
            )

    def alias(self, alias_name: str, target: str) -> None:
        _check_namespace(alias_name)
        with self._lock:
            self._aliases[alias_name] = target

    def aliases(self, mapping: Mapping[str, str]) -> None:
        with self._lock:
            for alias_name, target in mapping.items():
                self.alias(alias_name, target)

    def autoload(self, namespace_prefix: str, directory: str | Path) -> None:
        """Map a namespace prefix to a directory. Files are loaded on first `use`."""
        _check_namespace(namespace_prefix)
        with self._lock:
            self._autoloads[namespace_prefix.rstrip("/")] = Path(directory)

    def add_hook(self, namespace: str, transform: Callable[[Any], Any]) -> None:
        _check_namespace(namespace)
        with self._lock:
            self._hooks.setdefault(namespace, []).append(transform)

    # -- introspection -------------------------------------------------------

    def get_providers(self) -> dict[str, Binding]:
        with self._lock:
            return dict(self._bindings)

    def get_managers(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._managers)

    def get_extenders(self) -> dict[str, list[Extension]]:
        with self._lock:
            return {namespace: list(extensions) for namespace, extensions in self._extenders.items()}

    def get_hooks(self) -> dict[str, list[Any]]:
        with self._lock:
            return {namespace: list(hooks) for namespace, hooks in self._hooks.items()}

    def get_aliases(self) -> dict[str, str]:
        with self._lock:
            return dict(self._aliases)

    def get_autoloads(self) -> dict[str, Path]:
        with self._lock:
            return dict(self._autoloads)

    # -- resolution ----------------------------------------------------------

    def use(self, namespace: str) -> Any:
        """Resolve a namespace to its value.

        Resolution order:
        1. alias (one hop)
        2. binding or manager
        3. file under an autoloaded directory
        4. installed package
        Hooks registered for the namespace are applied to the result, then
        hooks registered under the alias name when one was used.
        A `..` segment under an autoloaded prefix is never resolved.
        """
        _check_namespace(namespace)
        with self._lock, self._track(namespace):
            target = self._classify(namespace)
            value = self._resolve_target(target)
            return self._apply_hooks(target, value)

    def make(self, target: Any, **overrides: Any) -> Any:
        """Construct `target` with its dependencies injected.

        - a namespace string is resolved with `use`; a class loaded from an
          autoloaded file is then constructed as well
        - a class is constructed with a fresh instance on every call
        - anything else is returned unchanged.
        `overrides` supply constructor arguments by parameter name.
        """
        if isinstance(target, str):
            with self._lock:
                value = self.use(target)
                if inspect.isclass(value) and self._classify(target).kind is Kind.AUTOLOAD:
                    return self.make(value, **overrides)

            if overrides:
                msg = f"Overrides can only be applied when making a class, '{target}' did not resolve to one"
                raise InvalidArgument(msg)
            return value

        if not inspect.isclass(target):
            return target

        with self._lock, self._track(target.__qualname__):
            return Injector(self).construct(target, **overrides)

    def make_func(self, target: str) -> MethodRef:
        """Make the instance for `"<namespace>.<method>"` and pair it with the method name."""
        match = _METHOD_TARGET.fullmatch(target) if isinstance(target, str) else None
        if match is None:
            msg = f"Unable to make {target!r}, expected '<namespace>.<method>'"
            raise InvalidFormat(msg)

        namespace, method = match.groups()
        instance = self.make(namespace)
        if not callable(getattr(instance, method, None)):
            msg = f"{method} does not exists on {namespace}"
            raise MethodNotFound(msg, name=method, obj=instance)

        return MethodRef(instance=instance, method=method)

    def is_registered(self, namespace: str) -> bool:
        """Whether `namespace` is an alias, binding or manager."""
        with self._lock:
            return namespace in self._aliases or namespace in self._bindings or namespace in self._managers

    def _classify(self, name: str) -> Target:
        namespace = self._aliases.get(name, name)
        alias = name if namespace != name else None

        if namespace in self._bindings or namespace in self._managers:
            return Target(Kind.DIRECT, namespace, alias=alias)

        root = self._autoload_root(namespace)
        if root is not None:
            parts = namespace[len(root) + 1 :].split("/")
            if ".." in parts:
                # paths may not climb out of the autoloaded directory
                msg = f"Cannot find module '{namespace}'"
                raise ModuleNotFound(msg, name=namespace)
            return Target(Kind.AUTOLOAD, namespace, self._autoloads[root].joinpath(*parts), alias=alias)

        return Target(Kind.EXTERNAL, namespace, alias=alias)

    def _autoload_root(self, namespace: str) -> str | None:
        matches = [
            prefix
            for prefix in self._autoloads
            if namespace.startswith(prefix + "/") and len(namespace) > len(prefix) + 1
        ]
        return max(matches, key=len, default=None)

    def _resolve_target(self, target: Target) -> Any:
        if target.kind is Kind.DIRECT:
            return self._resolve_direct(target.namespace)
        if target.kind is Kind.AUTOLOAD:
            return self._loader.load_module(target.path)
        return self._loader.load_package(target.namespace)

    def _resolve_direct(self, namespace: str) -> Any:
        binding = self._bindings.get(namespace)
        if binding is not None and binding.is_cached:
            return binding.cached_instance

        # extensions must be on the manager before the factory reads them
        self._apply_extensions(namespace)

        if binding is None:
            return self._managers[namespace]

        value = _invoke(binding.closure, self)
        if binding.singleton:
            binding.cached_instance = value
        return value

    def _apply_extensions(self, namespace: str) -> None:
        extensions = self._extenders.get(namespace)
        if not extensions:
            return

        definition = self._managers.get(namespace)
        if definition is None:
            msg = f"Incomplete implementation, '{namespace}' has extensions but no manager to receive them"
            raise IncompleteImplementation(msg)

        for extension in extensions:
            definition.extend(extension.key, _invoke(extension.callback, self))

    def _apply_hooks(self, target: Target, value: Any) -> Any:
        if target.kind is Kind.AUTOLOAD:
            value = _apply_declared_hooks(value)

        names = [target.namespace] if target.alias is None else [target.namespace, target.alias]
        for name in names:
            for transform in self._hooks.get(name, ()):
                if not callable(transform):
                    logger.debug("Skipping non-callable hook %r on '%s'", transform, name)
                    continue
                value = transform(value)
        return value

    @contextmanager
    def _track(self, name: str) -> Iterator[None]:
        if len(self._resolving) >= self._max_depth:
            raise MaxDepthExceeded([*self._resolving, name], self._max_depth)

        self._resolving.append(name)
        try:
            yield
        finally:
            self._resolving.pop()


class Injector:
    def __init__(self, container: Container) -> None:
        self._container = container

    def construct(self, cls: type, **overrides: Any) -> Any:
        params = _constructor_parameters(cls)
        self._check_overrides(cls, params, overrides)

        declared = _declared_dependencies(cls)
        if declared is not None:
            args = self._resolve_declared(declared, params, overrides)
            return cls(*args, **overrides)

        args, kwargs = self._resolve_inferred(params, overrides)
        return cls(*args, **kwargs)

    def _resolve_declared(
        self,
        declared: list[str],
        params: list[inspect.Parameter],
        overrides: dict[str, Any],
    ) -> list[Any]:
        positional = [p.name for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
        args = []

        for index, namespace in enumerate(declared):
            name = positional[index] if index < len(positional) else None
            if name is not None and name in overrides:
                args.append(overrides.pop(name))
            else:
                args.append(self._container.use(namespace))
        return args

    def _resolve_inferred(
        self,
        params: list[inspect.Parameter],
        overrides: dict[str, Any],
    ) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        skipped = False

        for p in params:
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue

            if p.name in overrides:
                value = overrides.pop(p.name)
            else:
                namespace = parameter_namespace(p.name)
                if p.default is not p.empty and not self._container.is_registered(namespace):
                    if p.kind is p.POSITIONAL_ONLY:
                        # cannot go by keyword, keep the slot filled with the default
                        args.append(p.default)
                        continue
                    # the default applies; later positionals must go by keyword
                    skipped = True
                    continue
                value = self._container.use(namespace)

            if p.kind is p.KEYWORD_ONLY or skipped:
                kwargs[p.name] = value
            else:
                args.append(value)

        kwargs.update(overrides)
        return args, kwargs

    def _check_overrides(self, cls: type, params: list[inspect.Parameter], overrides: dict[str, Any]) -> None:
        if any(p.kind is p.VAR_KEYWORD for p in params):
            return

        names = {p.name for p in params if p.kind is not p.POSITIONAL_ONLY}
        unknown = sorted(set(overrides) - names)
        if unknown:
            msg = f"Overrides don't match {cls.__name__} signature: unexpected {', '.join(unknown)}"
            raise InvalidArgument(msg)


def parameter_namespace(name: str) -> str:
    """Map a constructor parameter name to a namespace (``App_Bar`` -> ``App/Bar``)."""
    return name.replace("_", "/")


def _constructor_parameters(cls: type) -> list[inspect.Parameter]:
    init = cls.__init__  # type: ignore[misc]
    if init is object.__init__:
        return []

    try:
        sig = inspect.signature(init)
    except (TypeError, ValueError):
        # builtin __init__ without introspectable signature
        return []

    return list(sig.parameters.values())[1:]  # drop self


def _declared_dependencies(cls: type) -> list[str] | None:
    declared = getattr(cls, "inject", None)
    if declared is None:
        return None
    if callable(declared):
        declared = declared()
    if isinstance(declared, str) or not isinstance(declared, (list, tuple)):
        msg = f"{cls.__name__}.inject must be a list of namespaces, got {declared!r}"
        raise InvalidArgument(msg)
    return list(declared)


def _apply_declared_hooks(definition: Any) -> Any:
    names = getattr(definition, "hooks", None)
    if isinstance(names, str) or not isinstance(names, (list, tuple)):
        return definition

    value = definition
    for name in names:
        hook = getattr(definition, name, None)
        if callable(hook):
            value = hook(value)
        else:
            logger.debug("Skipping non-callable declared hook '%s' on %r", name, definition)
    return value


def _invoke(factory: Callable[..., Any], container: Container) -> Any:
    """Call a factory or extension callback, passing the container if it takes an argument."""
    try:
        params = inspect.signature(factory).parameters.values()
    except (TypeError, ValueError):
        return factory()

    takes_argument = any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL) for p in params
    )
    return factory(container) if takes_argument else factory()


def _check_namespace(namespace: Any) -> None:
    if not isinstance(namespace, str) or not namespace:
        msg = f"Invalid arguments, namespace must be a non-empty string, got {namespace!r}"
        raise InvalidArgument(msg)
