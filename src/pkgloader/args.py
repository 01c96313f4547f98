"""Argument parsing for the pkgloader command line."""

import argparse

from .constants import Constants


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pkgloader",
        description=(
            "pkgloader - resolve package archives and load their modules into the interpreter"
        ),
        add_help=True,
    )

    parser.add_argument("-s", "--source",
                        dest="SOURCES",
                        help="Package archive or directory of archives to register (repeatable)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("-p", "--package",
                        dest="PACKAGES",
                        help="Package to load as Id or Id:version (repeatable)",
                        action="append", type=str,
                        required=True)
    parser.add_argument("--download",
                        dest="DOWNLOAD",
                        help="Download dependencies missing from the registered sources.",
                        action="store_true")
    parser.add_argument("--download-dir",
                        dest="DOWNLOAD_DIR",
                        help=f"Directory for downloaded packages (default: {Constants.DEFAULT_DOWNLOAD_DIR})",
                        action="store", type=str)
    parser.add_argument("--registry-host",
                        dest="REGISTRY_HOST",
                        help=f"Remote registry host (default: {Constants.REGISTRY_HOST})",
                        action="store", type=str)
    parser.add_argument("--target-platform",
                        dest="TARGET_PLATFORM",
                        help="Platform to resolve for, e.g. py3.11 or cp3.12-linux (default: running interpreter)",
                        action="store", type=str)
    parser.add_argument("--detect-cycles",
                        dest="DETECT_CYCLES",
                        help="Fail on dependency cycles instead of recursing.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help=f"YAML configuration file (default: {Constants.DEFAULT_CONFIG_FILE} if present)",
                        action="store", type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the loaded module tree as JSON to this file",
                        action="store", type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not print the module tree.",
                        action="store_true")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
