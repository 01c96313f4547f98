"""Resolution manager: the application-owned entry point for loading packages.

The manager owns the package catalog and the trees of every directly
requested package. It is constructed explicitly and shared by reference;
installing the interpreter fallback hook is a separate, explicit call.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .catalog import ManagedPackage, PackageCatalog
from .config import LoaderConfig
from .exceptions import AlreadyResolved
from .platforms import PlatformIdentifier
from .registry import RemotePackageFetcher
from .resolver import DependencyResolver
from .runtime import FallbackModuleFinder, HostRuntime
from .tree import LoadedModule, ModuleTreeNode
from .versioning import PackageVersion

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ResolutionManager:
    """Holds the catalog and the roots of all requested package trees."""

    def __init__(
        self,
        catalog: Optional[PackageCatalog] = None,
        runtime: Optional[HostRuntime] = None,
        fetcher: Optional[RemotePackageFetcher] = None,
        config: Optional[LoaderConfig] = None,
    ):
        self.config = config or LoaderConfig()
        self.catalog = catalog if catalog is not None else PackageCatalog()
        self.runtime = runtime or HostRuntime()
        self.fetcher = fetcher or RemotePackageFetcher(
            registry_host=self.config.registry_host,
            timeout=self.config.request_timeout,
        )
        self.resolver = DependencyResolver(
            self.catalog,
            self.runtime,
            self.fetcher,
            build_only_namespaces=self.config.build_only_namespaces,
            detect_cycles=self.config.detect_cycles,
        )
        self._roots: List[ModuleTreeNode] = []
        self._hook: Optional[FallbackModuleFinder] = None
        self._target_platform: Optional[PlatformIdentifier] = None
        self._lock = threading.Lock()

    @property
    def target_platform(self) -> PlatformIdentifier:
        """Platform packages are resolved for (configured or detected once)."""
        if self._target_platform is None:
            self._target_platform = self.config.resolve_target_platform()
        return self._target_platform

    @property
    def tree(self) -> ModuleTreeNode:
        """Nameless root whose children are all successfully requested packages."""
        return ModuleTreeNode(is_managed=True, children=tuple(self._roots))

    def register_fallback_hook(self) -> FallbackModuleFinder:
        """Install the interpreter's last-resort module lookup. Idempotent."""
        if self._hook is None:
            self._hook = self.runtime.register_fallback_hook(self.find_module)
            logger.debug("Fallback module hook registered")
        return self._hook

    def unregister_fallback_hook(self) -> None:
        if self._hook is not None:
            self.runtime.unregister_fallback_hook(self._hook)
            self._hook = None

    def find_module(self, requested_name: str) -> Optional[LoadedModule]:
        """Search every requested tree for ``requested_name`` (``name`` or ``name==version``)."""
        return self.tree.find_module(requested_name)

    def add_package_from_file(self, path: PathLike) -> ManagedPackage:
        return self.catalog.add_from_file(path)

    def add_packages_from_path(self, path: PathLike) -> List[ManagedPackage]:
        return self.catalog.add_from_path(path)

    def add_source(self, source: PathLike) -> List[ManagedPackage]:
        """Register a single archive or every archive below a directory."""
        if Path(source).is_dir():
            return self.add_packages_from_path(source)
        return [self.add_package_from_file(source)]

    def get_package_by_id(
        self,
        package_id: str,
        version: Optional[PackageVersion] = None,
        save_path: Optional[PathLike] = None,
    ) -> Optional[ManagedPackage]:
        """Registered package with this id (and version, if given).

        When it is not registered and both ``version`` and ``save_path`` are
        given, the package is downloaded into ``save_path`` and registered.
        """
        existing = self.catalog.find(package_id, version)
        if existing is not None:
            return existing
        if version is None or save_path is None:
            return None
        path = self.fetcher.fetch(package_id, version, save_path)
        self.catalog.add_from_file(path)
        return self.catalog.find(package_id, version)

    def request_package(
        self,
        package: ManagedPackage,
        download_missing: bool = False,
        dependencies_path: Optional[PathLike] = None,
    ) -> ModuleTreeNode:
        """Resolve and load one package and its dependencies.

        Raises:
            AlreadyResolved: This package object has been loaded before.
            PackageLoaderError: Any resolution, download or binding failure.
        """
        with self._lock:
            if package.tree is not None:
                raise AlreadyResolved(package.id, package.version)
            tree = self.resolver.resolve(
                package,
                self.target_platform,
                download_missing=download_missing,
                destination=dependencies_path,
            )
            self._roots.append(tree)
        return tree

    def request_packages(
        self,
        packages: Iterable[ManagedPackage],
        download_missing: bool = False,
        dependencies_path: Optional[PathLike] = None,
    ) -> ModuleTreeNode:
        """Request several packages; returns a nameless root over their trees.

        Packages are processed in order and each one is all-or-nothing: a
        failure stops the call, packages loaded before it stay loaded.
        """
        trees = [
            self.request_package(package, download_missing, dependencies_path)
            for package in packages
        ]
        return ModuleTreeNode(is_managed=True, children=tuple(trees))
