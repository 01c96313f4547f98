"""Data models for package versions and version ranges."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import semantic_version

from ..exceptions import VersionFormatError

_VERSION_RE = re.compile(
    r"^\s*v?(?P<release>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<prerelease>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?\s*$"
)


@functools.total_ordering
class PackageVersion:
    """A totally ordered package version.

    Accepts up to four numeric release components (``major.minor.patch.revision``)
    followed by an optional semver prerelease and build metadata. Prerelease
    precedence follows semantic versioning; build metadata is ignored for
    ordering and equality. ``str()`` returns the text the version was parsed
    from so manifests round-trip exactly.
    """

    __slots__ = ("_original", "_semver", "_revision")

    def __init__(self, text: str):
        match = _VERSION_RE.match(text or "")
        if not match:
            raise VersionFormatError(f"Invalid version string: {text!r}")
        release = [int(part) for part in match.group("release").split(".")]
        release += [0] * (4 - len(release))
        prerelease = match.group("prerelease")
        build = match.group("build")
        self._original = text.strip()
        self._revision = release[3]
        try:
            self._semver = semantic_version.Version(
                major=release[0],
                minor=release[1],
                patch=release[2],
                prerelease=tuple(prerelease.split(".")) if prerelease else (),
                build=tuple(build.split(".")) if build else (),
            )
        except ValueError as exc:
            raise VersionFormatError(f"Invalid version string: {text!r}") from exc

    @classmethod
    def parse(cls, text: str) -> "PackageVersion":
        """Parse a version string, raising VersionFormatError on bad input."""
        return cls(text)

    @property
    def major(self) -> int:
        return self._semver.major

    @property
    def minor(self) -> int:
        return self._semver.minor

    @property
    def patch(self) -> int:
        return self._semver.patch

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def is_prerelease(self) -> bool:
        return bool(self._semver.prerelease)

    @property
    def normalized(self) -> str:
        """Canonical text: three components, the revision only when non-zero."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self._revision:
            text += f".{self._revision}"
        if self._semver.prerelease:
            text += "-" + ".".join(self._semver.prerelease)
        return text

    def _key(self) -> Tuple:
        major, minor, patch, prerelease_key = self._semver.precedence_key[:4]
        return (major, minor, patch, self._revision, prerelease_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "PackageVersion") -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self.normalized)

    def __str__(self) -> str:
        return self._original

    def __repr__(self) -> str:
        return f"PackageVersion({self._original!r})"


@dataclass(frozen=True)
class VersionRange:
    """Interval predicate over package versions.

    A missing bound is unbounded on that side. ``find_best_match`` returns the
    highest candidate the range accepts.
    """

    min_version: Optional[PackageVersion] = None
    min_inclusive: bool = True
    max_version: Optional[PackageVersion] = None
    max_inclusive: bool = False

    @classmethod
    def exact(cls, version: PackageVersion) -> "VersionRange":
        return cls(min_version=version, min_inclusive=True, max_version=version, max_inclusive=True)

    @classmethod
    def all(cls) -> "VersionRange":
        return cls()

    @property
    def has_lower_bound(self) -> bool:
        return self.min_version is not None

    @property
    def has_upper_bound(self) -> bool:
        return self.max_version is not None

    def satisfies(self, version: PackageVersion) -> bool:
        """Return True when ``version`` lies inside the range."""
        if self.min_version is not None:
            if self.min_inclusive:
                if version < self.min_version:
                    return False
            elif version <= self.min_version:
                return False
        if self.max_version is not None:
            if self.max_inclusive:
                if version > self.max_version:
                    return False
            elif version >= self.max_version:
                return False
        return True

    def find_best_match(self, candidates: Iterable[PackageVersion]) -> Optional[PackageVersion]:
        """Pick the highest candidate satisfying the range, or None."""
        best: Optional[PackageVersion] = None
        for candidate in candidates:
            if self.satisfies(candidate) and (best is None or candidate > best):
                best = candidate
        return best

    def __str__(self) -> str:
        if self.min_version is None and self.max_version is None:
            return "(, )"
        if (
            self.min_version is not None
            and self.min_version == self.max_version
            and self.min_inclusive
            and self.max_inclusive
        ):
            return f"[{self.min_version}]"
        lower = "[" if self.min_inclusive else "("
        upper = "]" if self.max_inclusive else ")"
        min_text = "" if self.min_version is None else str(self.min_version)
        max_text = "" if self.max_version is None else str(self.max_version)
        return f"{lower}{min_text}, {max_text}{upper}"
