"""Shared HTTP helpers used by the registry client.

Encapsulates request/timeout error handling so callers receive loader errors
instead of raw ``requests`` exceptions.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import requests

from ..constants import Constants
from ..exceptions import FetchError, FetchTimeout
from .logging_utils import Timer, extra_context, is_debug_enabled, safe_url

logger = logging.getLogger(__name__)


def _remove_partial(destination: Path, written: bool) -> None:
    # Only a file this download opened is ours to remove.
    if written:
        destination.unlink(missing_ok=True)


def download_file(
    url: str,
    destination: Path,
    *,
    context: str,
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> Path:
    """Stream ``url`` into ``destination`` with consistent error handling.

    Args:
        url: Source URL.
        destination: File path to write; parent directories are created.
        context: Human-readable source tag for logs and errors.
        timeout: Request deadline in seconds (defaults to Constants.REQUEST_TIMEOUT).
        **kwargs: Additional requests.get parameters.

    Returns:
        The destination path.

    Raises:
        FetchTimeout: The deadline was exceeded.
        FetchError: Connection failure, non-200 status or local write failure.
    """
    effective_timeout = Constants.REQUEST_TIMEOUT if timeout is None else timeout
    safe_target = safe_url(url)
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                ),
            )
        written = False
        try:
            res = requests.get(url, timeout=effective_timeout, stream=True, **kwargs)
            try:
                if res.status_code != 200:
                    raise FetchError(
                        f"{context} download failed with HTTP {res.status_code}: {safe_target}"
                    )
                with open(destination, "wb") as fh:
                    written = True
                    for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            fh.write(chunk)
            finally:
                res.close()
        except requests.Timeout as exc:
            _remove_partial(destination, written)
            logger.error("%s request timed out after %s seconds", context, effective_timeout)
            raise FetchTimeout(
                f"{context} request timed out after {effective_timeout} seconds: {safe_target}"
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            _remove_partial(destination, written)
            logger.error("%s connection error: %s", context, exc)
            raise FetchError(f"{context} connection error: {exc}") from exc
        except FetchError:
            _remove_partial(destination, written)
            raise
        except OSError as exc:
            _remove_partial(destination, written)
            raise FetchError(f"{context} could not write {destination}: {exc}") from exc

    if is_debug_enabled(logger):
        logger.debug(
            "HTTP response ok",
            extra=extra_context(
                event="http_response",
                component="http_client",
                action="GET",
                outcome="success",
                duration_ms=t.duration_ms(),
                target=safe_target,
            ),
        )
    return destination
