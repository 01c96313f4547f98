"""Remote package registry access."""

from .client import RemotePackageFetcher, package_file_name

__all__ = ["RemotePackageFetcher", "package_file_name"]
