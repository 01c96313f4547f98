"""Parsing utilities for versions, version ranges and CLI package tokens."""

from typing import Optional, Tuple

from ..exceptions import VersionFormatError
from .models import PackageVersion, VersionRange


def tokenize_rightmost_colon(s: str) -> Tuple[str, Optional[str]]:
    """Return (identifier, spec or None) using the rightmost-colon rule."""
    s = s.strip()
    if ':' not in s:
        return s, None
    parts = s.rsplit(':', 1)
    identifier = parts[0].strip()
    spec_part = parts[1].strip() if len(parts) > 1 else ''
    spec = spec_part if spec_part else None
    return identifier, spec


def parse_version(text: str) -> PackageVersion:
    """Parse a single version string."""
    return PackageVersion.parse(text)


def _parse_bound(text: str, range_spec: str) -> Optional[PackageVersion]:
    text = text.strip()
    if not text:
        return None
    try:
        return PackageVersion.parse(text)
    except VersionFormatError as exc:
        raise VersionFormatError(f"Invalid version range {range_spec!r}: {exc.message}") from exc


def parse_version_range(range_spec: Optional[str]) -> VersionRange:
    """Parse NuGet interval notation into a VersionRange.

    Supported forms:
        ``1.0``        version >= 1.0
        ``[1.0]``      exactly 1.0
        ``[1.0,2.0)``  1.0 <= version < 2.0 (any bracket combination)
        ``(1.0,)``     version > 1.0
        ``(,2.0]``     version <= 2.0
        ``""``/``*``   any version

    Raises:
        VersionFormatError: The range is malformed.
    """
    if range_spec is None:
        return VersionRange.all()
    spec = range_spec.strip()
    if not spec or spec == '*':
        return VersionRange.all()

    # Plain version means "this version or newer"
    if spec[0] not in '[(':
        if spec[-1] in '])' or ',' in spec:
            raise VersionFormatError(f"Invalid version range {range_spec!r}")
        return VersionRange(min_version=_parse_bound(spec, range_spec), min_inclusive=True)

    if len(spec) < 2 or spec[-1] not in '])':
        raise VersionFormatError(f"Invalid version range {range_spec!r}")

    min_inclusive = spec[0] == '['
    max_inclusive = spec[-1] == ']'
    inner = spec[1:-1]
    parts = inner.split(',')

    # Single-element bracket [1.2] means exact version
    if len(parts) == 1:
        if not (min_inclusive and max_inclusive):
            raise VersionFormatError(f"Invalid version range {range_spec!r}")
        version = _parse_bound(parts[0], range_spec)
        if version is None:
            raise VersionFormatError(f"Invalid version range {range_spec!r}")
        return VersionRange.exact(version)

    if len(parts) != 2:
        raise VersionFormatError(f"Invalid version range {range_spec!r}")

    lower = _parse_bound(parts[0], range_spec)
    upper = _parse_bound(parts[1], range_spec)
    if lower is None and upper is None:
        raise VersionFormatError(f"Invalid version range {range_spec!r}")
    if lower is not None and upper is not None and upper < lower:
        raise VersionFormatError(f"Invalid version range {range_spec!r}: upper bound below lower bound")
    return VersionRange(
        min_version=lower,
        min_inclusive=min_inclusive if lower is not None else True,
        max_version=upper,
        max_inclusive=max_inclusive if upper is not None else False,
    )
