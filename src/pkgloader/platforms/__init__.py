"""Platform identifiers and the compatibility rules between them."""

from .compatibility import get_nearest, is_compatible, reduce_compatible
from .models import ANY_PLATFORM, PlatformIdentifier
from .runtime import get_running_platform

__all__ = [
    "ANY_PLATFORM",
    "PlatformIdentifier",
    "get_nearest",
    "get_running_platform",
    "is_compatible",
    "reduce_compatible",
]
