"""Shared fixtures: package archives built on the fly and module cleanup."""

import sys
import uuid
import zipfile
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import pytest

from pkgloader.platforms import PlatformIdentifier

NUSPEC_NAMESPACE = "http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd"

# Every module bound by the tests carries this prefix so it can be removed again.
MODULE_PREFIX = "pkgl_"

Dependencies = Sequence[Tuple[str, Optional[str]]]


def _dependency_xml(dependencies: Dependencies, indent: str) -> str:
    lines = []
    for dep_id, version in dependencies:
        version_attr = f' version="{version}"' if version is not None else ""
        lines.append(f'{indent}<dependency id="{dep_id}"{version_attr} />')
    return "\n".join(lines)


def build_nuspec(
    package_id: str,
    version: str,
    groups: Optional[Dict[Optional[str], Dependencies]] = None,
    flat: Optional[Dependencies] = None,
    namespaced: bool = True,
) -> str:
    """Render a manifest document."""
    xmlns = f' xmlns="{NUSPEC_NAMESPACE}"' if namespaced else ""
    dependency_block = ""
    if groups is not None or flat is not None:
        inner = []
        for platform, deps in (groups or {}).items():
            attr = f' targetFramework="{platform}"' if platform is not None else ""
            inner.append(f"      <group{attr}>")
            if deps:
                inner.append(_dependency_xml(deps, "        "))
            inner.append("      </group>")
        if flat:
            inner.append(_dependency_xml(flat, "      "))
        dependency_block = "    <dependencies>\n" + "\n".join(inner) + "\n    </dependencies>\n"
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f"<package{xmlns}>\n"
        "  <metadata>\n"
        f"    <id>{package_id}</id>\n"
        f"    <version>{version}</version>\n"
        f"{dependency_block}"
        "  </metadata>\n"
        "</package>\n"
    )


class PackageBuilder:
    """Writes package archives into a temporary directory."""

    def __init__(self, root: Path):
        self.root = root

    def build_bytes(
        self,
        package_id: str,
        version: str,
        groups: Optional[Dict[Optional[str], Dependencies]] = None,
        flat: Optional[Dependencies] = None,
        files: Optional[Dict[str, str]] = None,
        namespaced: bool = True,
        include_manifest: bool = True,
    ) -> bytes:
        path = self.build(
            package_id,
            version,
            groups=groups,
            flat=flat,
            files=files,
            namespaced=namespaced,
            include_manifest=include_manifest,
            subdir="_bytes",
        )
        return path.read_bytes()

    def build(
        self,
        package_id: str,
        version: str,
        groups: Optional[Dict[Optional[str], Dependencies]] = None,
        flat: Optional[Dependencies] = None,
        files: Optional[Dict[str, str]] = None,
        namespaced: bool = True,
        include_manifest: bool = True,
        subdir: Optional[str] = None,
    ) -> Path:
        directory = self.root / subdir if subdir else self.root
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{package_id}.{version}.nupkg"
        with zipfile.ZipFile(path, "w") as archive:
            if include_manifest:
                archive.writestr(
                    f"{package_id}.nuspec",
                    build_nuspec(package_id, version, groups, flat, namespaced),
                )
            for name, source in (files or {}).items():
                archive.writestr(name, source)
        return path


@pytest.fixture
def builder(tmp_path):
    """Archive builder writing below the test's temporary directory."""
    return PackageBuilder(tmp_path / "packages")


@pytest.fixture
def uid():
    """Short unique suffix for module names and package ids."""
    return uuid.uuid4().hex[:8]


@pytest.fixture
def target():
    return PlatformIdentifier.parse("py3.11")


@pytest.fixture(autouse=True)
def _drop_bound_test_modules():
    """Remove modules bound by a test from sys.modules afterwards."""
    yield
    for name in [n for n in sys.modules if n.startswith(MODULE_PREFIX)]:
        del sys.modules[name]

