"""Detection of the platform the current interpreter provides."""

from __future__ import annotations

import logging
import platform
import re
import sys
from typing import Optional, Tuple

from ..constants import PlatformFamilies
from .models import PlatformIdentifier

logger = logging.getLogger(__name__)


def _os_name() -> Optional[str]:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform.startswith("freebsd"):
        return "freebsd"
    return None


def _os_version(os_name: Optional[str]) -> Optional[Tuple[int, ...]]:
    if os_name is None:
        return None
    release = platform.mac_ver()[0] if os_name == "macos" else platform.release()
    match = re.match(r"^(\d+)", release or "")
    if not match:
        return None
    return (int(match.group(1)),)


def get_running_platform() -> PlatformIdentifier:
    """Describe the running interpreter, e.g. ``py3.12-linux6``.

    Uses the generic ``py`` family so packages declared for any interpreter
    implementation match; the OS qualifier distinguishes OS-specific content.
    """
    os_name = _os_name()
    target = PlatformIdentifier(
        framework=PlatformFamilies.PYTHON.value,
        version=(sys.version_info.major, sys.version_info.minor),
        platform=os_name,
        platform_version=_os_version(os_name),
    )
    logger.debug("Running platform detected as %s", target)
    return target
