"""Package versions and version ranges."""

from .models import PackageVersion, VersionRange
from .parser import parse_version, parse_version_range, tokenize_rightmost_colon

__all__ = [
    "PackageVersion",
    "VersionRange",
    "parse_version",
    "parse_version_range",
    "tokenize_rightmost_colon",
]
