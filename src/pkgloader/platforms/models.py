"""Platform identifiers: interpreter family, language level and optional OS qualifier."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from ..constants import Constants, PlatformFamilies
from ..exceptions import PlatformFormatError

_FAMILIES = tuple(family.value for family in PlatformFamilies)

_PLATFORM_RE = re.compile(
    r"^(?P<family>[a-z]+)"
    r"(?P<version>\d+(?:\.\d+)?)"
    r"(?:-(?P<os>[a-z]+)(?P<os_version>\d+(?:\.\d+)*)?)?$"
)


def _parse_framework_version(text: str) -> Tuple[int, int]:
    if "." in text:
        major, minor = text.split(".", 1)
        return int(major), int(minor)
    # Compact wheel-tag form: first digit is the major version (cp311 -> 3.11)
    if len(text) == 1:
        return int(text), 0
    return int(text[0]), int(text[1:])


@dataclass(frozen=True)
class PlatformIdentifier:
    """A target execution environment.

    ``framework`` is the interpreter family (``py``, ``cp``, ``pp``) or ``any``
    for content that targets no particular platform.
    """

    framework: str
    version: Tuple[int, int] = (0, 0)
    platform: Optional[str] = None
    platform_version: Optional[Tuple[int, ...]] = None

    @classmethod
    def parse(cls, text: str) -> "PlatformIdentifier":
        """Parse ``py3.8``, ``cp311``, ``py3.10-linux`` or ``py3-windows10``.

        Raises:
            PlatformFormatError: The text is outside the recognized vocabulary.
        """
        if text is None:
            raise PlatformFormatError("Platform identifier must not be empty")
        normalized = text.strip().lower()
        if normalized == Constants.ANY_PLATFORM:
            return ANY_PLATFORM
        match = _PLATFORM_RE.match(normalized)
        if not match:
            raise PlatformFormatError(f"Unrecognized platform identifier: {text!r}")
        family = match.group("family")
        if family not in _FAMILIES:
            raise PlatformFormatError(
                f"Unknown framework {family!r} in {text!r}; expected one of {', '.join(_FAMILIES)}"
            )
        os_name = match.group("os")
        if os_name is not None and os_name not in Constants.SUPPORTED_OS:
            raise PlatformFormatError(
                f"Unknown OS qualifier {os_name!r} in {text!r}; "
                f"expected one of {', '.join(Constants.SUPPORTED_OS)}"
            )
        os_version = match.group("os_version")
        return cls(
            framework=family,
            version=_parse_framework_version(match.group("version")),
            platform=os_name,
            platform_version=tuple(int(p) for p in os_version.split(".")) if os_version else None,
        )

    @property
    def is_any(self) -> bool:
        return self.framework == Constants.ANY_PLATFORM

    @property
    def short_name(self) -> str:
        if self.is_any:
            return Constants.ANY_PLATFORM
        name = f"{self.framework}{self.version[0]}.{self.version[1]}"
        if self.platform:
            name += f"-{self.platform}"
            if self.platform_version:
                name += ".".join(str(p) for p in self.platform_version)
        return name

    def __str__(self) -> str:
        return self.short_name


ANY_PLATFORM = PlatformIdentifier(framework=Constants.ANY_PLATFORM)
