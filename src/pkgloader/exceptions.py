"""Error taxonomy for package resolution and loading.

Every error raised by the loader derives from PackageLoaderError. Errors that
escape the resolver carry ``chain``: the (package id, version) path from the
directly requested package down to the package being resolved when the
failure happened.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

Chain = Tuple[Tuple[str, str], ...]


class PackageLoaderError(Exception):
    """Base class for all loader errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.chain: Optional[Chain] = None

    def format_chain(self) -> str:
        """Render the dependency chain as ``A 1.0 -> B 2.0``."""
        if not self.chain:
            return ""
        return " -> ".join(f"{pkg_id} {version}" for pkg_id, version in self.chain)

    def __str__(self) -> str:
        chain = self.format_chain()
        if chain:
            return f"{self.message} (dependency chain: {chain})"
        return self.message


class ManifestError(PackageLoaderError):
    """The package archive or its manifest is malformed."""


class VersionFormatError(PackageLoaderError, ValueError):
    """A version or version range string could not be parsed."""


class PlatformFormatError(PackageLoaderError, ValueError):
    """A platform identifier is outside the recognized vocabulary."""


class ResolutionError(PackageLoaderError):
    """Dependency resolution failed."""

    def __init__(self, message: str, package_id: Optional[str] = None):
        super().__init__(message)
        self.package_id = package_id


class NoCompatiblePlatform(ResolutionError):
    """None of a package's declared platforms suit the target."""

    def __init__(self, package_id: str, target: object, declared: Iterable[object]):
        self.target = target
        self.declared = tuple(declared)
        super().__init__(
            f"No compatible platform found for {package_id} with target {target} "
            f"(declared: {', '.join(str(p) for p in self.declared) or 'none'})",
            package_id,
        )


class MissingDependency(ResolutionError):
    """A dependency is neither registered, loaded nor downloadable."""

    def __init__(self, package_id: str, version_range: object, requested_by: str):
        self.version_range = version_range
        self.requested_by = requested_by
        super().__init__(
            f"Missing dependency {package_id} version {version_range} for package {requested_by}",
            package_id,
        )


class IncompatibleVersions(ResolutionError):
    """Only versions outside the required range are available."""

    def __init__(self, package_id: str, available: Sequence[object], version_range: object):
        self.available = tuple(available)
        self.version_range = version_range
        super().__init__(
            f"Only found incompatible versions for dependency {package_id} "
            f"({', '.join(str(v) for v in self.available)}); valid range is {version_range}",
            package_id,
        )


class AlreadyResolved(ResolutionError):
    """The same package object was requested for resolution twice."""

    def __init__(self, package_id: str, version: object):
        super().__init__(f"{package_id} {version} has already been loaded.", package_id)


class CyclicDependency(ResolutionError):
    """A package depends on itself through its dependency graph."""

    def __init__(self, package_id: str, version: object):
        super().__init__(f"Dependency cycle detected at {package_id} {version}", package_id)


class FetchError(PackageLoaderError):
    """Downloading a package from the remote registry failed."""

    def __init__(self, message: str, package_id: Optional[str] = None, version: Optional[str] = None):
        super().__init__(message)
        self.package_id = package_id
        self.version = version


class FetchTimeout(FetchError):
    """The remote registry did not answer within the configured deadline."""


class BindError(PackageLoaderError):
    """Module source could not be bound into the running interpreter."""

    def __init__(self, module_name: str, origin: str, reason: str):
        self.module_name = module_name
        self.origin = origin
        super().__init__(f"Could not bind module {module_name} from {origin}: {reason}")


class ConfigError(PackageLoaderError):
    """The configuration file could not be read or holds invalid values."""
