from __future__ import annotations

import importlib
import importlib.util
import logging
import re
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from ._errors import ModuleNotFound


if TYPE_CHECKING:
    from types import ModuleType


logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"\W")


class Loader(Protocol):
    def load_module(self, path: Path) -> Any: ...

    def load_package(self, name: str) -> Any: ...


class ModuleLoader:
    """Default loader for autoloaded source files and installed packages.

    A source file is executed once per loader and cached by its resolved path.
    Its exported definition is the module attribute named after the file stem
    (``Http/routes.py`` exports ``routes``), or the module itself when there is
    no such attribute.
    """

    def __init__(self) -> None:
        self._modules: dict[Path, ModuleType] = {}

    def load_module(self, path: Path) -> Any:
        source = self._locate(Path(path))
        if source is None:
            msg = f"Cannot find module '{path}'"
            raise ModuleNotFound(msg, path=str(path))

        module = self._modules.get(source)
        if module is None:
            module = self._exec_source(source)
            self._modules[source] = module

        stem = source.parent.name if source.name == "__init__.py" else source.stem
        return getattr(module, stem, module)

    def load_package(self, name: str) -> Any:
        if not name or name.startswith("."):
            # empty and relative names are never importable packages
            msg = f"Cannot find module '{name}'"
            raise ModuleNotFound(msg, name=name)

        try:
            return importlib.import_module(name)
        except ModuleNotFoundError as exc:
            # only mask the error when it is about the requested module itself
            if exc.name is None or not (name == exc.name or name.startswith(exc.name + ".")):
                raise
            msg = f"Cannot find module '{name}'"
            raise ModuleNotFound(msg, name=name) from exc

    def _locate(self, path: Path) -> Path | None:
        candidates = [path.with_name(path.name + ".py"), path / "__init__.py"]
        if path.suffix == ".py":
            candidates.insert(0, path)

        for candidate in candidates:
            if candidate.is_file():
                return candidate.resolve()
        return None

    def _exec_source(self, source: Path) -> ModuleType:
        module_name = "_litefold_autoload" + _UNSAFE_CHARS.sub("_", str(source.with_suffix("")))
        spec = importlib.util.spec_from_file_location(module_name, source)
        if spec is None or spec.loader is None:
            msg = f"Cannot find module '{source}'"
            raise ModuleNotFound(msg, path=str(source))

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise

        logger.debug("Loaded '%s' as module %s", source, module_name)
        return module
