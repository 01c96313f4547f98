"""Bridge to the live interpreter: module lookup, binding and the fallback import hook."""
from __future__ import annotations

import importlib.abc
import importlib.util
import logging
import sys
import types
from typing import Callable, Optional, Tuple

from ..common.logging_utils import extra_context, is_debug_enabled
from ..constants import Constants
from ..exceptions import BindError, VersionFormatError
from ..tree import LoadedModule
from ..versioning import PackageVersion, VersionRange

logger = logging.getLogger(__name__)

ModuleLookup = Callable[[str], Optional[LoadedModule]]


def module_name_from_path(relative_path: str) -> Tuple[str, bool]:
    """Map ``acme/util.py`` to ``("acme.util", False)`` and ``acme/__init__.py`` to ``("acme", True)``."""
    stem = relative_path[: -len(Constants.EXECUTABLE_EXTENSION)]
    parts = [part for part in stem.split("/") if part]
    if parts and parts[-1] == "__init__":
        return ".".join(parts[:-1]), True
    return ".".join(parts), False


class _ArchiveSourceLoader(importlib.abc.InspectLoader):
    """Loader for module source read out of a package archive."""

    def __init__(self, code: types.CodeType, source: bytes, is_package: bool):
        self._code = code
        self._source = source
        self._is_package = is_package

    def is_package(self, fullname):
        return self._is_package

    def get_source(self, fullname):
        return importlib.util.decode_source(self._source)

    def get_code(self, fullname):
        return self._code

    def exec_module(self, module):
        exec(self._code, module.__dict__)  # pylint: disable=exec-used


class _BoundModuleLoader(importlib.abc.Loader):
    """Loader handing out a module object that is already executed."""

    def __init__(self, module: types.ModuleType):
        self._module = module

    def create_module(self, spec):
        return self._module

    def exec_module(self, module):
        # Already executed when it was bound.
        return None


class FallbackModuleFinder(importlib.abc.MetaPathFinder):
    """Last entry on ``sys.meta_path``: serves modules the loader knows about
    once every regular finder has given up."""

    def __init__(self, lookup: ModuleLookup):
        self._lookup = lookup

    def find_spec(self, fullname, path=None, target=None):
        loaded = self._lookup(fullname)
        if loaded is None or loaded.module is None:
            return None
        logger.debug("Fallback hook resolved %s to %s", fullname, loaded.full_name)
        return importlib.util.spec_from_loader(fullname, _BoundModuleLoader(loaded.module))


class HostRuntime:
    """The running interpreter as seen by the resolver."""

    def find_loaded(self, name: str, version_range: VersionRange) -> Optional[LoadedModule]:
        """First module in ``sys.modules`` named ``name`` (case-insensitive) whose
        ``__version__`` satisfies ``version_range``."""
        wanted = name.casefold()
        for module_name, module in list(sys.modules.items()):
            if module is None or module_name.casefold() != wanted:
                continue
            raw_version = getattr(module, "__version__", None)
            if not isinstance(raw_version, str):
                continue
            try:
                version = PackageVersion.parse(raw_version)
            except VersionFormatError:
                continue
            if version_range.satisfies(version):
                return LoadedModule(name=module_name, version=raw_version, module=module)
        return None

    def bind(
        self,
        name: str,
        version: str,
        source: bytes,
        origin: str,
        is_package: bool = False,
    ) -> LoadedModule:
        """Compile and execute ``source`` as module ``name`` and register it in ``sys.modules``.

        ``__version__`` is preset to the package version so later
        already-loaded queries can find the module.

        Raises:
            BindError: The source does not compile or raises while executing.
        """
        try:
            code = compile(source, origin, "exec")
        except (SyntaxError, ValueError) as exc:
            raise BindError(name, origin, str(exc)) from exc

        loader = _ArchiveSourceLoader(code, source, is_package)
        spec = importlib.util.spec_from_loader(name, loader, origin=origin, is_package=is_package)
        module = importlib.util.module_from_spec(spec)
        module.__file__ = origin
        module.__version__ = version

        previous = sys.modules.get(name)
        if previous is not None:
            logger.warning("Module %s is already bound; replacing it with version %s", name, version)
        sys.modules[name] = module
        try:
            loader.exec_module(module)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            if previous is not None:
                sys.modules[name] = previous
            else:
                sys.modules.pop(name, None)
            raise BindError(name, origin, f"{type(exc).__name__}: {exc}") from exc

        parent_name, _, child_name = name.rpartition(".")
        parent = sys.modules.get(parent_name) if parent_name else None
        if parent is not None:
            setattr(parent, child_name, module)

        if is_debug_enabled(logger):
            logger.debug(
                "Module bound",
                extra=extra_context(
                    event="bind",
                    component="runtime",
                    action="bind",
                    target=origin,
                    package_id=name,
                    version=version,
                ),
            )
        return LoadedModule(name=name, version=version, module=module)

    def register_fallback_hook(self, lookup: ModuleLookup) -> FallbackModuleFinder:
        """Append a finder consulting ``lookup`` to the end of ``sys.meta_path``."""
        finder = FallbackModuleFinder(lookup)
        sys.meta_path.append(finder)
        return finder

    def unregister_fallback_hook(self, finder: FallbackModuleFinder) -> None:
        if finder in sys.meta_path:
            sys.meta_path.remove(finder)
