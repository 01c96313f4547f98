"""pkgloader - resolve package archives and load their modules into the running interpreter."""

from .catalog import ManagedPackage, PackageCatalog
from .config import LoaderConfig, load_config
from .exceptions import (
    AlreadyResolved,
    BindError,
    ConfigError,
    CyclicDependency,
    FetchError,
    FetchTimeout,
    IncompatibleVersions,
    ManifestError,
    MissingDependency,
    NoCompatiblePlatform,
    PackageLoaderError,
    ResolutionError,
)
from .manager import ResolutionManager
from .resolver import DependencyResolver
from .tree import LoadedModule, ModuleTreeNode

__version__ = "0.1.0"

__all__ = [
    "AlreadyResolved",
    "BindError",
    "ConfigError",
    "CyclicDependency",
    "DependencyResolver",
    "FetchError",
    "FetchTimeout",
    "IncompatibleVersions",
    "LoadedModule",
    "LoaderConfig",
    "ManagedPackage",
    "ManifestError",
    "MissingDependency",
    "ModuleTreeNode",
    "NoCompatiblePlatform",
    "PackageCatalog",
    "PackageLoaderError",
    "ResolutionError",
    "ResolutionManager",
    "load_config",
]
