"""Dependency resolver: builds the loaded module tree for one package.

For the requested package the resolver picks the nearest declared platform,
walks that platform's dependency declarations in order, selects the highest
registered version each range accepts (downloading it when allowed), reuses
modules the interpreter already has, recurses into the rest and finally binds
the package's own modules. The first compatible candidate wins; ranges
requested by different packages are not unified.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .catalog import ManagedPackage, PackageCatalog
from .common.logging_utils import extra_context, is_debug_enabled
from .constants import Constants
from .archive import DependencyDeclaration, FileGroup, PackageManifest
from .exceptions import (
    AlreadyResolved,
    CyclicDependency,
    IncompatibleVersions,
    MissingDependency,
    NoCompatiblePlatform,
    PackageLoaderError,
)
from .platforms import PlatformIdentifier, get_nearest
from .registry import RemotePackageFetcher
from .runtime import HostRuntime, module_name_from_path
from .tree import LoadedModule, ModuleTreeNode
from .versioning import VersionRange

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Recursive resolver over a package catalog.

    Args:
        catalog: Registered packages; fetched packages are added to it.
        runtime: Interpreter bridge used for already-loaded queries and binding.
        fetcher: Remote fetcher used when downloads are enabled.
        build_only_namespaces: Case-insensitive id prefixes that are never
            resolved (defaults to Constants.BUILD_ONLY_NAMESPACES).
        detect_cycles: Raise CyclicDependency instead of recursing forever.
    """

    def __init__(
        self,
        catalog: PackageCatalog,
        runtime: Optional[HostRuntime] = None,
        fetcher: Optional[RemotePackageFetcher] = None,
        build_only_namespaces: Optional[Iterable[str]] = None,
        detect_cycles: bool = False,
    ):
        self.catalog = catalog
        self.runtime = runtime or HostRuntime()
        self.fetcher = fetcher
        if build_only_namespaces is None:
            build_only_namespaces = Constants.BUILD_ONLY_NAMESPACES
        self.build_only_namespaces = tuple(ns.lower() for ns in build_only_namespaces)
        self.detect_cycles = detect_cycles
        self._in_flight: List[Tuple[str, str]] = []

    def resolve(
        self,
        package: ManagedPackage,
        target: PlatformIdentifier,
        download_missing: bool = False,
        destination: Optional[Union[str, Path]] = None,
    ) -> ModuleTreeNode:
        """Resolve and load ``package`` and its dependencies for ``target``.

        Raises:
            AlreadyResolved: ``package`` was resolved before.
            ResolutionError: A dependency cannot be satisfied.
            FetchError: A download failed.
            BindError: A module failed to load.
            ValueError: Downloads were enabled without a destination or fetcher.
        """
        if package.tree is not None:
            raise AlreadyResolved(package.id, package.version)
        if download_missing and destination is None:
            raise ValueError(
                "A path for storing dependencies must be set when download_missing is enabled."
            )
        if download_missing and self.fetcher is None:
            raise ValueError("download_missing requires a remote package fetcher")

        logger.info("Resolving %s %s for %s", package.id, package.version, target)
        with self.catalog.lock:
            self._in_flight = []
            return self._resolve_package(package, target, download_missing, destination)

    def _resolve_package(
        self,
        package: ManagedPackage,
        target: PlatformIdentifier,
        download_missing: bool,
        destination: Optional[Union[str, Path]],
    ) -> ModuleTreeNode:
        key = (package.id, str(package.version))
        if self.detect_cycles and key in self._in_flight:
            error = CyclicDependency(package.id, package.version)
            error.chain = tuple(self._in_flight) + (key,)
            raise error

        self._in_flight.append(key)
        try:
            node = self._build_node(package, target, download_missing, destination)
        except PackageLoaderError as exc:
            if exc.chain is None:
                exc.chain = tuple(self._in_flight)
            raise
        finally:
            self._in_flight.pop()

        package.tree = node
        return node

    def select_platform(
        self, manifest: PackageManifest, target: PlatformIdentifier
    ) -> Tuple[PlatformIdentifier, Optional[FileGroup]]:
        """Nearest declared platform for ``target`` and its loadable file group, if any.

        Raises:
            NoCompatiblePlatform: No declared platform is compatible with ``target``.
        """
        declared = manifest.declared_platforms
        nearest = get_nearest(target, declared)
        if nearest is None:
            raise NoCompatiblePlatform(manifest.id, target, declared)
        return nearest, manifest.get_executable_file_group(nearest)

    def _is_build_only(self, package_id: str) -> bool:
        lowered = package_id.lower()
        return any(lowered.startswith(ns) for ns in self.build_only_namespaces)

    def _build_node(
        self,
        package: ManagedPackage,
        target: PlatformIdentifier,
        download_missing: bool,
        destination: Optional[Union[str, Path]],
    ) -> ModuleTreeNode:
        manifest = package.manifest
        platform, file_group = self.select_platform(manifest, target)
        group = manifest.get_dependency_group(platform)
        dependencies = group.dependencies if group is not None else ()
        # Dependencies are resolved against the platform chosen here; "any"
        # carries no information, so the incoming target is kept instead.
        child_target = target if platform.is_any else platform

        if is_debug_enabled(logger):
            logger.debug(
                "Platform selected",
                extra=extra_context(
                    event="decision",
                    component="resolver",
                    action="select_platform",
                    package_id=manifest.id,
                    platform=str(platform),
                    count=len(dependencies),
                ),
            )

        children: List[ModuleTreeNode] = []
        index = 0
        fetched = False
        while index < len(dependencies):
            dependency = dependencies[index]
            if self._is_build_only(dependency.package_id):
                logger.debug("Skipping build-only dependency %s", dependency.package_id)
                index += 1
                continue

            candidates = self.catalog.candidates(dependency.package_id)
            if not candidates:
                loaded = self.runtime.find_loaded(dependency.package_id, dependency.version_range)
                if loaded is not None:
                    logger.debug("Reusing loaded module %s for %s", loaded.full_name, manifest.id)
                    children.append(ModuleTreeNode.for_existing_module(loaded))
                    index += 1
                    fetched = False
                    continue
                if not download_missing or fetched:
                    raise MissingDependency(dependency.package_id, dependency.version_range, manifest.id)

            best = dependency.version_range.find_best_match(c.version for c in candidates)
            if best is None:
                if download_missing and not fetched:
                    self._fetch(dependency, manifest.id, destination)
                    fetched = True
                    # Retry the same declaration now that the package is registered.
                    continue
                raise IncompatibleVersions(
                    dependency.package_id,
                    [c.version for c in candidates],
                    dependency.version_range,
                )

            index += 1
            fetched = False
            selected = next(c for c in candidates if c.version == best)

            if selected.manifest.is_linking_package and not selected.manifest.has_dependencies:
                logger.debug("Skipping %s %s: no code and no dependencies", selected.id, best)
                continue

            loaded = self.runtime.find_loaded(dependency.package_id, VersionRange.exact(best))
            if loaded is not None:
                children.append(selected.tree or ModuleTreeNode.for_existing_module(loaded))
                continue
            if selected.tree is not None:
                children.append(selected.tree)
                continue

            children.append(
                self._resolve_package(selected, child_target, download_missing, destination)
            )

        own_modules: Tuple[LoadedModule, ...] = ()
        if file_group is not None:
            own_modules = tuple(self._load_own_modules(package, file_group))

        return ModuleTreeNode(
            package_id=manifest.id,
            package_version=str(manifest.version),
            is_managed=True,
            own_modules=own_modules,
            children=tuple(children),
        )

    def _fetch(
        self,
        dependency: DependencyDeclaration,
        requested_by: str,
        destination: Optional[Union[str, Path]],
    ) -> ManagedPackage:
        version_range = dependency.version_range
        version = version_range.max_version if version_range.has_upper_bound else version_range.min_version
        if version is None:
            # An unbounded range names no version to download.
            raise MissingDependency(dependency.package_id, version_range, requested_by)
        path = self.fetcher.fetch(dependency.package_id, version, destination)
        return self.catalog.add_from_file(path)

    def _load_own_modules(self, package: ManagedPackage, file_group: FileGroup) -> List[LoadedModule]:
        prefix = Constants.LIB_FOLDER + "/"
        entries = []
        for item in file_group.executable_items:
            relative = item[len(prefix):]
            if "/" in relative:
                relative = relative.split("/", 1)[1]
            name, is_package = module_name_from_path(relative)
            if not name:
                continue
            entries.append((name, is_package, item))
        # Parent packages before their submodules
        entries.sort(key=lambda entry: (entry[0].count("."), not entry[1], entry[0]))

        modules: List[LoadedModule] = []
        version = str(package.version)
        with package.open() as reader:
            for name, is_package, item in entries:
                source = reader.read_file_bytes(item)
                origin = f"{package.path}/{item}"
                modules.append(self.runtime.bind(name, version, source, origin, is_package=is_package))
        logger.info("Loaded %d module(s) from %s %s", len(modules), package.id, version)
        return modules
