"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3


class PlatformFamilies(Enum):
    """Interpreter families a package can target.

    Args:
        Enum (string): Framework tag used in platform identifiers.
    """

    PYTHON = "py"
    CPYTHON = "cp"
    PYPY = "pp"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_HOST = "www.nuget.org"
    REGISTRY_URL_PACKAGE = "https://{host}/api/v2/package/{id}/{version}"
    PACKAGE_EXTENSION = ".nupkg"
    MANIFEST_EXTENSION = ".nuspec"
    LIB_FOLDER = "lib"
    EXECUTABLE_EXTENSION = ".py"
    ANY_PLATFORM = "any"
    SUPPORTED_OS = ["linux", "windows", "macos", "freebsd"]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "PKGLOADER_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    DEFAULT_DOWNLOAD_DIR = "packages"
    DEFAULT_CONFIG_FILE = "pkgloader.yml"

    # Packages only consumed by compilers and test harnesses, never at runtime.
    # Matched as case-insensitive id prefixes.
    BUILD_ONLY_NAMESPACES = [
        "microsoft.netcore",
        "microsoft.build",
        "microsoft.codeanalysis.csharp.workspaces",
        "microsoft.codeanalysis.visualbasic.workspaces",
        "microsoft.net.sdk",
        "microsoft.net.test.sdk",
        "xunit.runner.visualstudio",
        "microsoft.testplatform.testhost",
        "microsoft.codeanalysis.fxcopanalyzers",
        "stylecop.analyzers",
        "sonaranalyzer.csharp",
        "setuptools",
        "wheel",
        "pytest",
    ]
