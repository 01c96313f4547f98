"""Compatibility rule and nearest-platform reducer."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .models import PlatformIdentifier


def is_compatible(target: PlatformIdentifier, declared: PlatformIdentifier) -> bool:
    """Return True when content declared for ``declared`` can run on ``target``.

    ``declared`` must ask for nothing ``target`` does not provide: the same
    interpreter family, a language level no newer than the target's and, if
    it names an OS, the target's OS at an OS version no newer than the target's.
    """
    if declared.is_any:
        return True
    if target.is_any or declared.framework != target.framework:
        return False
    if declared.version > target.version:
        return False
    if declared.platform is not None:
        if declared.platform != target.platform:
            return False
        if (declared.platform_version or ()) > (target.platform_version or ()):
            return False
    return True


def _nearness(candidate: PlatformIdentifier) -> Tuple:
    return (
        not candidate.is_any,
        candidate.platform is not None,
        candidate.version,
        candidate.platform_version or (),
    )


def reduce_compatible(
    target: PlatformIdentifier, candidates: Iterable[PlatformIdentifier]
) -> List[PlatformIdentifier]:
    """All distinct candidates compatible with ``target``, nearest first."""
    compatible = {c for c in candidates if is_compatible(target, c)}
    return sorted(compatible, key=_nearness, reverse=True)


def get_nearest(
    target: PlatformIdentifier, candidates: Iterable[PlatformIdentifier]
) -> Optional[PlatformIdentifier]:
    """The most specific, highest compatible candidate, or None."""
    ordered = reduce_compatible(target, candidates)
    return ordered[0] if ordered else None
