"""Loader configuration: YAML file, environment and CLI overrides.

Precedence, lowest to highest: Constants defaults, YAML file, environment
variables, CLI flags.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .constants import Constants
from .exceptions import ConfigError
from .platforms import PlatformIdentifier, get_running_platform

logger = logging.getLogger(__name__)

ENV_REGISTRY_HOST = "PKGLOADER_REGISTRY_HOST"
ENV_DOWNLOAD_DIR = "PKGLOADER_DOWNLOAD_DIR"


@dataclass
class LoaderConfig:
    """Runtime tunables for package resolution."""

    registry_host: str = Constants.REGISTRY_HOST
    download_missing: bool = False
    download_dir: str = Constants.DEFAULT_DOWNLOAD_DIR
    request_timeout: float = Constants.REQUEST_TIMEOUT
    target_platform: Optional[str] = None
    build_only_namespaces: List[str] = field(
        default_factory=lambda: list(Constants.BUILD_ONLY_NAMESPACES)
    )
    detect_cycles: bool = False
    sources: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoaderConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))
        config = cls(**{k: v for k, v in data.items() if k in known})
        config.validate()
        return config

    def validate(self) -> None:
        """Check value types; parse the target platform early so typos surface at startup."""
        if not isinstance(self.sources, list) or not isinstance(self.build_only_namespaces, list):
            raise ConfigError("'sources' and 'build_only_namespaces' must be lists")
        try:
            self.request_timeout = float(self.request_timeout)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid request_timeout: {self.request_timeout!r}") from exc
        if self.target_platform:
            PlatformIdentifier.parse(self.target_platform)

    def resolve_target_platform(self) -> PlatformIdentifier:
        """Configured target platform, or the running interpreter's."""
        if self.target_platform:
            return PlatformIdentifier.parse(self.target_platform)
        return get_running_platform()

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> "LoaderConfig":
        env = os.environ if environ is None else environ
        if env.get(ENV_REGISTRY_HOST):
            self.registry_host = env[ENV_REGISTRY_HOST].strip()
        if env.get(ENV_DOWNLOAD_DIR):
            self.download_dir = env[ENV_DOWNLOAD_DIR].strip()
        return self

    def apply_args(self, args: Any) -> "LoaderConfig":
        """Apply parsed CLI arguments; only flags the user actually set override."""
        if getattr(args, "SOURCES", None):
            self.sources = list(self.sources) + list(args.SOURCES)
        if getattr(args, "DOWNLOAD", False):
            self.download_missing = True
        if getattr(args, "DOWNLOAD_DIR", None):
            self.download_dir = args.DOWNLOAD_DIR
        if getattr(args, "REGISTRY_HOST", None):
            self.registry_host = args.REGISTRY_HOST
        if getattr(args, "TARGET_PLATFORM", None):
            self.target_platform = args.TARGET_PLATFORM
        if getattr(args, "DETECT_CYCLES", False):
            self.detect_cycles = True
        self.validate()
        return self


def load_config(path: Optional[Union[str, Path]] = None) -> LoaderConfig:
    """Load configuration from a YAML file, falling back to defaults.

    A missing file is not an error: a warning is logged and defaults apply.

    Raises:
        ConfigError: The file is not valid YAML or not a mapping.
    """
    if not path:
        return LoaderConfig().apply_env()
    config_path = Path(path)
    if not config_path.is_file():
        logger.warning("Config file not found: %s", config_path)
        return LoaderConfig().apply_env()

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must contain a mapping")
    # Allow the settings to live under a "pkgloader" section
    section = data.get("pkgloader", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Section 'pkgloader' in {config_path} must be a mapping")
    config = LoaderConfig.from_dict(section).apply_env()
    logger.info("Configuration loaded from %s", config_path)
    return config
