"""Registry of package archives known to the process."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import List, Optional, Union

from .archive import PackageArchiveReader, PackageManifest
from .constants import Constants
from .tree import ModuleTreeNode
from .versioning import PackageVersion

logger = logging.getLogger(__name__)


class ManagedPackage:
    """A registered package archive plus its resolution state.

    ``tree`` stays None until the package has been resolved; afterwards every
    reference to this package reuses it.
    """

    def __init__(self, manifest: PackageManifest, path: Optional[Path] = None):
        self.manifest = manifest
        self.path = path
        self.tree: Optional[ModuleTreeNode] = None

    @property
    def id(self) -> str:
        return self.manifest.id

    @property
    def version(self) -> PackageVersion:
        return self.manifest.version

    def open(self) -> PackageArchiveReader:
        """Open the backing archive for reading file contents."""
        if self.path is None:
            raise FileNotFoundError(f"Package {self.manifest} has no archive on disk")
        return PackageArchiveReader(self.path)

    def __repr__(self) -> str:
        return f"ManagedPackage({self.id!r}, {str(self.version)!r})"


class PackageCatalog:
    """Process-wide, append-only list of managed packages.

    Package ids compare case-insensitively. Registration is guarded by a
    re-entrant lock so concurrent registrations do not interleave.
    """

    def __init__(self):
        self._packages: List[ManagedPackage] = []
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self):
        return iter(list(self._packages))

    def add(self, package: ManagedPackage) -> ManagedPackage:
        with self.lock:
            self._packages.append(package)
        logger.debug("Registered package %s %s", package.id, package.version)
        return package

    def add_from_file(self, path: Union[str, Path]) -> ManagedPackage:
        """Read the manifest of a local archive and register it.

        Raises:
            ManifestError: The archive or its manifest is malformed.
        """
        archive_path = Path(path)
        with PackageArchiveReader(archive_path) as reader:
            manifest = reader.read_manifest()
        return self.add(ManagedPackage(manifest, archive_path))

    def add_from_path(self, directory: Union[str, Path]) -> List[ManagedPackage]:
        """Register every archive found recursively below ``directory``."""
        root = Path(directory)
        if not root.is_dir():
            raise NotADirectoryError(f"Package source {root} is not a directory")
        archives = sorted(root.rglob(f"*{Constants.PACKAGE_EXTENSION}"))
        added = [self.add_from_file(archive) for archive in archives]
        logger.info("Registered %d package(s) from %s", len(added), root)
        return added

    def candidates(self, package_id: str) -> List[ManagedPackage]:
        """All registered packages with this id, in registration order."""
        wanted = package_id.casefold()
        return [pkg for pkg in list(self._packages) if pkg.id.casefold() == wanted]

    def find(self, package_id: str, version: Optional[PackageVersion] = None) -> Optional[ManagedPackage]:
        """First registered package with this id and, if given, this version."""
        for pkg in self.candidates(package_id):
            if version is None or pkg.version == version:
                return pkg
        return None
