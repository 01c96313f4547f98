"""Package archive reader: zip archives carrying a ``.nuspec`` manifest and a ``lib/`` tree."""
from __future__ import annotations

import io
import logging
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..common.logging_utils import extra_context, is_debug_enabled
from ..constants import Constants
from ..exceptions import ManifestError, PlatformFormatError, VersionFormatError
from ..platforms import ANY_PLATFORM, PlatformIdentifier
from ..versioning import PackageVersion, parse_version_range
from .manifest import DependencyDeclaration, DependencyGroup, FileGroup, PackageManifest

logger = logging.getLogger(__name__)

ArchiveSource = Union[str, Path, bytes]


def _parse_platform(text: Optional[str], where: str) -> PlatformIdentifier:
    if text is None or not text.strip():
        return ANY_PLATFORM
    try:
        return PlatformIdentifier.parse(text)
    except PlatformFormatError as exc:
        raise ManifestError(f"Invalid platform in {where}: {exc.message}") from exc


class PackageArchiveReader:
    """Read manifest data and file contents from one package archive.

    Usable as a context manager; the underlying zip file stays open until
    ``close()``.
    """

    def __init__(self, source: ArchiveSource):
        if isinstance(source, (bytes, bytearray)):
            self._label = "<memory>"
            stream: Union[str, io.BytesIO] = io.BytesIO(source)
        else:
            self._label = str(source)
            stream = str(source)
        try:
            self._zip = zipfile.ZipFile(stream)
        except zipfile.BadZipFile as exc:
            raise ManifestError(f"{self._label} is not a valid package archive: {exc}") from exc
        self._manifest: Optional[PackageManifest] = None

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "PackageArchiveReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _manifest_entry(self) -> str:
        for name in self._zip.namelist():
            if name.lower().endswith(Constants.MANIFEST_EXTENSION):
                return name
        raise ManifestError(f"No {Constants.MANIFEST_EXTENSION} manifest found in {self._label}")

    def _load_nuspec(self) -> Tuple[ET.Element, str]:
        entry = self._manifest_entry()
        try:
            root = ET.fromstring(self._zip.read(entry))
        except ET.ParseError as exc:
            raise ManifestError(f"Couldn't parse manifest {entry} in {self._label}: {exc}") from exc
        # Namespaced tags look like "{namespace}package"
        if not root.tag.startswith("{"):
            raise ManifestError(f"invalid {Constants.MANIFEST_EXTENSION} file found in {self._label}")
        namespace = root.tag[1:].split("}", 1)[0]
        return root, namespace

    def read_manifest(self) -> PackageManifest:
        """Parse the manifest; the result is cached for the reader's lifetime.

        Raises:
            ManifestError: Missing manifest, missing namespace, missing id,
                malformed version or unknown platform.
        """
        if self._manifest is not None:
            return self._manifest

        root, namespace = self._load_nuspec()
        ns = f"{{{namespace}}}"
        id_elem = root.find(f".//{ns}id")
        package_id = (id_elem.text or "").strip() if id_elem is not None else ""
        if not package_id:
            raise ManifestError(f"Manifest in {self._label} has no package id")
        version_elem = root.find(f".//{ns}version")
        version_text = (version_elem.text or "") if version_elem is not None else ""
        try:
            version = PackageVersion.parse(version_text)
        except VersionFormatError as exc:
            raise ManifestError(
                f"Found invalid version format in package {package_id} ({self._label})"
            ) from exc

        self._manifest = PackageManifest(
            id=package_id,
            version=version,
            dependency_groups=tuple(self._read_dependency_groups(root, ns, package_id)),
            file_groups=tuple(self._read_file_groups()),
        )
        if is_debug_enabled(logger):
            logger.debug(
                "Manifest parsed",
                extra=extra_context(
                    event="parse",
                    component="archive",
                    action="read_manifest",
                    package_id=package_id,
                    version=str(version),
                    count=len(self._manifest.dependency_groups),
                ),
            )
        return self._manifest

    def _read_dependencies(self, parent: ET.Element, ns: str, package_id: str) -> Tuple[DependencyDeclaration, ...]:
        declarations: List[DependencyDeclaration] = []
        for dep in parent.findall(f"{ns}dependency"):
            dep_id = (dep.get("id") or "").strip()
            if not dep_id:
                raise ManifestError(f"Dependency without id in package {package_id} ({self._label})")
            try:
                version_range = parse_version_range(dep.get("version"))
            except VersionFormatError as exc:
                raise ManifestError(
                    f"Invalid version range for dependency {dep_id} in package {package_id}: {exc.message}"
                ) from exc
            declarations.append(DependencyDeclaration(package_id=dep_id, version_range=version_range))
        return tuple(declarations)

    def _read_dependency_groups(self, root: ET.Element, ns: str, package_id: str) -> List[DependencyGroup]:
        dependencies = root.find(f".//{ns}dependencies")
        if dependencies is None:
            return []
        groups: List[DependencyGroup] = []
        for group in dependencies.findall(f"{ns}group"):
            platform = _parse_platform(group.get("targetFramework"), f"package {package_id}")
            groups.append(DependencyGroup(platform, self._read_dependencies(group, ns, package_id)))
        # Dependencies listed without a group apply to every platform
        flat = self._read_dependencies(dependencies, ns, package_id)
        if flat:
            groups.append(DependencyGroup(ANY_PLATFORM, flat))
        return groups

    def _read_file_groups(self) -> List[FileGroup]:
        prefix = Constants.LIB_FOLDER + "/"
        grouped: Dict[PlatformIdentifier, List[str]] = {}
        for name in sorted(self._zip.namelist()):
            if not name.startswith(prefix) or name.endswith("/"):
                continue
            relative = name[len(prefix):]
            if "/" in relative:
                folder = relative.split("/", 1)[0]
                platform = _parse_platform(folder, f"{self._label} folder {prefix}{folder}")
            else:
                platform = ANY_PLATFORM
            grouped.setdefault(platform, []).append(name)
        return [FileGroup(platform, tuple(items)) for platform, items in grouped.items()]

    def list_dependency_groups(self) -> Tuple[DependencyGroup, ...]:
        return self.read_manifest().dependency_groups

    def list_file_groups(self) -> Tuple[FileGroup, ...]:
        return self.read_manifest().file_groups

    def read_file_bytes(self, path: str) -> bytes:
        """Return the raw bytes of an archive entry."""
        try:
            return self._zip.read(path)
        except KeyError as exc:
            raise ManifestError(f"Entry {path} not found in {self._label}") from exc


def parse_manifest(data: bytes) -> PackageManifest:
    """Parse the manifest of an in-memory package archive."""
    with PackageArchiveReader(data) as reader:
        return reader.read_manifest()


def read_manifest_file(path: Union[str, Path]) -> PackageManifest:
    """Parse the manifest of a package archive on disk."""
    with PackageArchiveReader(path) as reader:
        return reader.read_manifest()
