"""Tests for package archive reading and manifest parsing."""

import pytest

from pkgloader.archive import (
    PackageArchiveReader,
    parse_manifest,
    read_manifest_file,
)
from pkgloader.exceptions import ManifestError
from pkgloader.platforms import ANY_PLATFORM, PlatformIdentifier
from pkgloader.versioning import PackageVersion, parse_version_range


class TestReadManifest:
    """Test manifest identity and dependency parsing."""

    @pytest.mark.parametrize("version", ["1.0", "1.2.3", "4.0.0.12", "2.1.0-beta.2", "0.9.1+sha.5"])
    def test_id_and_version_round_trip(self, builder, version):
        """Well-formed manifests load with id and version preserved exactly."""
        manifest = parse_manifest(builder.build_bytes("Acme.Widgets", version))
        assert manifest.id == "Acme.Widgets"
        assert str(manifest.version) == version
        assert manifest.version == PackageVersion(version)

    def test_dependency_groups_per_platform(self, builder):
        """Each <group> becomes a dependency group keyed by its platform."""
        path = builder.build(
            "Acme.App",
            "1.0.0",
            groups={
                "py3.8": [("Acme.Core", "[1.0,2.0)"), ("Acme.Log", "1.1")],
                "py3.11-linux": [("Acme.Core", "[2.0]")],
            },
        )
        manifest = read_manifest_file(path)
        assert manifest.declared_platforms == [
            PlatformIdentifier.parse("py3.8"),
            PlatformIdentifier.parse("py3.11-linux"),
        ]
        group = manifest.get_dependency_group(PlatformIdentifier.parse("py3.8"))
        assert [d.package_id for d in group.dependencies] == ["Acme.Core", "Acme.Log"]
        assert group.dependencies[0].version_range == parse_version_range("[1.0,2.0)")
        assert manifest.has_dependencies

    def test_ungrouped_dependencies_apply_to_any(self, builder):
        """Dependencies outside a group form the 'any' group."""
        manifest = parse_manifest(builder.build_bytes("Acme.App", "1.0", flat=[("Acme.Core", None)]))
        group = manifest.get_dependency_group(ANY_PLATFORM)
        assert group is not None
        assert group.dependencies[0].version_range.find_best_match([PackageVersion("0.0.1")])

    def test_group_without_platform_is_any(self, builder):
        manifest = parse_manifest(builder.build_bytes("Acme.App", "1.0", groups={None: []}))
        assert manifest.declared_platforms == [ANY_PLATFORM]
        assert not manifest.has_dependencies

    def test_missing_manifest(self, builder):
        """An archive without a manifest entry is rejected."""
        data = builder.build_bytes("Acme.App", "1.0", include_manifest=False, files={"lib/x.py": ""})
        with pytest.raises(ManifestError, match="manifest"):
            parse_manifest(data)

    def test_missing_namespace(self, builder):
        """A manifest whose root element has no namespace is rejected."""
        data = builder.build_bytes("Acme.App", "1.0", namespaced=False)
        with pytest.raises(ManifestError, match="invalid .nuspec"):
            parse_manifest(data)

    def test_invalid_version(self, builder):
        """An unparsable version names the package in the error."""
        data = builder.build_bytes("Acme.App", "one.two")
        with pytest.raises(ManifestError, match="invalid version format in package Acme.App"):
            parse_manifest(data)

    def test_invalid_dependency_range(self, builder):
        data = builder.build_bytes("Acme.App", "1.0", flat=[("Acme.Core", "[2.0,1.0]")])
        with pytest.raises(ManifestError, match="Acme.Core"):
            parse_manifest(data)

    def test_unknown_platform(self, builder):
        data = builder.build_bytes("Acme.App", "1.0", groups={"net6.0": []})
        with pytest.raises(ManifestError, match="Invalid platform"):
            parse_manifest(data)

    def test_duplicate_platform_groups(self, builder):
        """Two dependency groups for the same platform are malformed."""
        data = builder.build_bytes(
            "Acme.App", "1.0", groups={None: [("Acme.A", "1.0")]}, flat=[("Acme.B", "1.0")]
        )
        with pytest.raises(ManifestError, match="more than one dependency group"):
            parse_manifest(data)

    def test_not_a_zip(self):
        with pytest.raises(ManifestError, match="not a valid package archive"):
            parse_manifest(b"definitely not a zip file")


class TestFileGroups:
    """Test lib/ folder grouping."""

    def test_files_grouped_by_platform_folder(self, builder):
        data = builder.build_bytes(
            "Acme.Core",
            "1.0",
            files={
                "lib/py3.8/acme/__init__.py": "",
                "lib/py3.8/acme/util.py": "",
                "lib/py3.11/acme/__init__.py": "",
                "lib/py3.11/README.txt": "",
                "lib/top.py": "",
                "content/readme.md": "",
            },
        )
        with PackageArchiveReader(data) as reader:
            groups = {g.platform: g for g in reader.list_file_groups()}
            assert set(groups) == {
                PlatformIdentifier.parse("py3.8"),
                PlatformIdentifier.parse("py3.11"),
                ANY_PLATFORM,
            }
            assert groups[PlatformIdentifier.parse("py3.8")].executable_items == (
                "lib/py3.8/acme/__init__.py",
                "lib/py3.8/acme/util.py",
            )
            assert groups[PlatformIdentifier.parse("py3.11")].items == (
                "lib/py3.11/README.txt",
                "lib/py3.11/acme/__init__.py",
            )
            assert groups[ANY_PLATFORM].items == ("lib/top.py",)
            assert reader.read_file_bytes("lib/top.py") == b""

    def test_declared_platforms_fall_back_to_file_groups(self, builder):
        """Without dependency groups the file group platforms are the declared ones."""
        manifest = parse_manifest(
            builder.build_bytes("Acme.Core", "1.0", files={"lib/py3.9/acme.py": ""})
        )
        assert manifest.declared_platforms == [PlatformIdentifier.parse("py3.9")]
        assert not manifest.is_linking_package

    def test_placeholder_only_package_is_linking(self, builder):
        """A package whose lib/ holds no .py files ships no code."""
        manifest = parse_manifest(
            builder.build_bytes("Acme.Meta", "1.0", files={"lib/py3.8/_._": ""})
        )
        assert manifest.is_linking_package
        assert manifest.get_executable_file_group(PlatformIdentifier.parse("py3.8")) is None

    def test_package_without_files_declares_any(self, builder):
        manifest = parse_manifest(builder.build_bytes("Acme.Meta", "1.0"))
        assert manifest.declared_platforms == [ANY_PLATFORM]
        assert manifest.is_linking_package

    def test_read_missing_entry(self, builder):
        with PackageArchiveReader(builder.build_bytes("Acme.Core", "1.0")) as reader:
            with pytest.raises(ManifestError, match="not found"):
                reader.read_file_bytes("lib/missing.py")

    def test_unknown_platform_folder(self, builder):
        data = builder.build_bytes("Acme.Core", "1.0", files={"lib/net48/acme.py": ""})
        with pytest.raises(ManifestError, match="Invalid platform"):
            parse_manifest(data)
