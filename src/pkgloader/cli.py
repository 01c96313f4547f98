"""pkgloader command line entry point.

Registers package sources, resolves the requested packages for the target
platform, binds their modules into this interpreter and prints the loaded
module tree.
"""

import json
import logging
import sys
from pathlib import Path

from .args import parse_args
from .common.logging_utils import configure_logging, extra_context, is_debug_enabled
from .config import load_config
from .constants import Constants, ExitCodes
from .exceptions import FetchError, ManifestError, PackageLoaderError
from .manager import ResolutionManager
from .versioning import parse_version, tokenize_rightmost_colon

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging from --loglevel and --logfile."""
    configure_logging(getattr(args, "LOG_LEVEL", None))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def _config_path(args):
    if getattr(args, "CONFIG", None):
        return args.CONFIG
    if Path(Constants.DEFAULT_CONFIG_FILE).is_file():
        return Constants.DEFAULT_CONFIG_FILE
    return None


def _select_packages(manager, tokens, save_path):
    """Map ``Id`` / ``Id:version`` tokens to registered (or downloaded) packages."""
    packages = []
    for token in tokens:
        package_id, version_spec = tokenize_rightmost_colon(token)
        version = parse_version(version_spec) if version_spec else None
        package = manager.get_package_by_id(package_id, version, save_path)
        if package is None:
            wanted = f"{package_id} {version}" if version else package_id
            logger.error("Package %s is not registered in any source.", wanted)
            sys.exit(ExitCodes.RESOLUTION_ERROR.value)
        packages.append(package)
    return packages


def _write_output(path, tree) -> None:
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(tree.to_dict(), fh, indent=2)
    except OSError as exc:
        logger.error("Could not write output file %s: %s", path, exc)
        sys.exit(ExitCodes.FILE_ERROR.value)
    logger.info("Module tree written to %s", path)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main"),
        )

    try:
        config = load_config(_config_path(args)).apply_args(args)
        target = config.resolve_target_platform()
    except PackageLoaderError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(ExitCodes.FILE_ERROR.value)

    manager = ResolutionManager(config=config)
    manager.register_fallback_hook()
    logger.info("Target platform: %s", target)

    for source in config.sources:
        try:
            manager.add_source(source)
        except (OSError, ManifestError) as exc:
            logger.error("Could not register package source %s: %s", source, exc)
            sys.exit(ExitCodes.FILE_ERROR.value)

    download_dir = config.download_dir if config.download_missing else None
    try:
        packages = _select_packages(manager, args.PACKAGES, download_dir)
        tree = manager.request_packages(
            packages,
            download_missing=config.download_missing,
            dependencies_path=download_dir,
        )
    except FetchError as exc:
        logger.error("%s", exc)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    except PackageLoaderError as exc:
        logger.error("%s", exc)
        sys.exit(ExitCodes.RESOLUTION_ERROR.value)

    if not args.QUIET:
        print(tree.format_tree())
    if args.OUTPUT:
        _write_output(args.OUTPUT, tree)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="main",
                outcome="success",
                count=len(tree.flatten()),
            ),
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
