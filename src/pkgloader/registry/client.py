"""Registry client: download package archives through the V2 package endpoint."""
from __future__ import annotations

import logging
import urllib.parse
from pathlib import Path
from typing import Optional, Union

from ..common.http_client import download_file
from ..common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from ..constants import Constants
from ..exceptions import FetchError

logger = logging.getLogger(__name__)


def package_file_name(package_id: str, version: str) -> str:
    """Archive file name used for downloaded packages: ``{id}.{version}.nupkg``."""
    return f"{package_id}.{version}{Constants.PACKAGE_EXTENSION}"


class RemotePackageFetcher:
    """Fetch a package by id and version from a remote registry."""

    def __init__(self, registry_host: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize the fetcher.

        Args:
            registry_host: Registry host name (defaults to Constants.REGISTRY_HOST).
            timeout: Download deadline in seconds (defaults to Constants.REQUEST_TIMEOUT).
        """
        self.registry_host = registry_host or Constants.REGISTRY_HOST
        self.timeout = Constants.REQUEST_TIMEOUT if timeout is None else timeout

    def package_url(self, package_id: str, version: str) -> str:
        return Constants.REGISTRY_URL_PACKAGE.format(
            host=self.registry_host,
            id=urllib.parse.quote(package_id, safe=""),
            version=urllib.parse.quote(str(version), safe=""),
        )

    def fetch(self, package_id: str, version: object, destination_dir: Union[str, Path]) -> Path:
        """Download ``package_id`` at ``version`` into ``destination_dir``.

        Returns:
            Path of the saved archive.

        Raises:
            FetchTimeout: The registry did not answer in time.
            FetchError: Any other download failure.
        """
        version_text = str(version)
        url = self.package_url(package_id, version_text)
        destination = Path(destination_dir) / package_file_name(package_id, version_text)
        logger.info("Downloading package %s %s", package_id, version_text)
        with Timer() as t:
            try:
                download_file(url, destination, context="registry", timeout=self.timeout)
            except FetchError as exc:
                exc.package_id = package_id
                exc.version = version_text
                exc.message = f"Could not download package {package_id}.{version_text}: {exc.message}"
                raise
        if is_debug_enabled(logger):
            logger.debug(
                "Package downloaded",
                extra=extra_context(
                    event="download",
                    component="client",
                    action="fetch",
                    outcome="success",
                    target=safe_url(url),
                    package_id=package_id,
                    version=version_text,
                    duration_ms=t.duration_ms(),
                ),
            )
        return destination
