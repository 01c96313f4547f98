"""Package archives and their manifests."""

from .manifest import DependencyDeclaration, DependencyGroup, FileGroup, PackageManifest
from .reader import PackageArchiveReader, parse_manifest, read_manifest_file

__all__ = [
    "DependencyDeclaration",
    "DependencyGroup",
    "FileGroup",
    "PackageArchiveReader",
    "PackageManifest",
    "parse_manifest",
    "read_manifest_file",
]
