"""Read-only package manifest model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..constants import Constants
from ..exceptions import ManifestError
from ..platforms import ANY_PLATFORM, PlatformIdentifier
from ..versioning import PackageVersion, VersionRange


@dataclass(frozen=True)
class DependencyDeclaration:
    """One ``<dependency>`` entry: a package id and the versions it accepts."""

    package_id: str
    version_range: VersionRange


@dataclass(frozen=True)
class DependencyGroup:
    """Dependencies declared for one target platform."""

    platform: PlatformIdentifier
    dependencies: Tuple[DependencyDeclaration, ...] = ()


@dataclass(frozen=True)
class FileGroup:
    """Files shipped under ``lib/<platform>/``, as archive-relative paths."""

    platform: PlatformIdentifier
    items: Tuple[str, ...] = ()

    @property
    def executable_items(self) -> Tuple[str, ...]:
        return tuple(item for item in self.items if item.endswith(Constants.EXECUTABLE_EXTENSION))

    @property
    def has_executable_items(self) -> bool:
        return bool(self.executable_items)


@dataclass(frozen=True)
class PackageManifest:
    """Identity, per-platform dependencies and per-platform files of a package."""

    id: str
    version: PackageVersion
    dependency_groups: Tuple[DependencyGroup, ...] = ()
    file_groups: Tuple[FileGroup, ...] = field(default=())

    def __post_init__(self):
        seen = set()
        for group in self.dependency_groups:
            if group.platform in seen:
                raise ManifestError(
                    f"Package {self.id} {self.version} declares more than one dependency group "
                    f"for platform {group.platform}"
                )
            seen.add(group.platform)

    @property
    def is_linking_package(self) -> bool:
        """True when no platform ships loadable code; the package only aggregates dependencies."""
        return not any(group.has_executable_items for group in self.file_groups)

    @property
    def has_dependencies(self) -> bool:
        return any(group.dependencies for group in self.dependency_groups)

    @property
    def declared_platforms(self) -> List[PlatformIdentifier]:
        """Platforms to choose from: dependency groups, else file groups, else ``any``."""
        if self.dependency_groups:
            return [group.platform for group in self.dependency_groups]
        platforms = []
        for group in self.file_groups:
            if group.platform not in platforms:
                platforms.append(group.platform)
        return platforms or [ANY_PLATFORM]

    def get_dependency_group(self, platform: PlatformIdentifier) -> Optional[DependencyGroup]:
        for group in self.dependency_groups:
            if group.platform == platform:
                return group
        return None

    def get_executable_file_group(self, platform: PlatformIdentifier) -> Optional[FileGroup]:
        """The file group for ``platform`` if it holds at least one loadable file."""
        for group in self.file_groups:
            if group.platform == platform and group.has_executable_items:
                return group
        return None

    def __str__(self) -> str:
        return f"{self.id} {self.version}"
