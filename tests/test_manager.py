"""Tests for the resolution manager."""

import importlib
import sys
from unittest.mock import MagicMock

import pytest

from pkgloader.config import LoaderConfig
from pkgloader.exceptions import AlreadyResolved, MissingDependency
from pkgloader.manager import ResolutionManager
from pkgloader.platforms import PlatformIdentifier
from pkgloader.versioning import PackageVersion


@pytest.fixture
def manager():
    return ResolutionManager(config=LoaderConfig(target_platform="py3.11"))


class TestSources:
    """Test registering package sources."""

    def test_add_source_file_and_directory(self, manager, builder, uid, tmp_path):
        single = builder.build(f"pkgl_one_{uid}", "1.0", subdir="single")
        builder.build(f"pkgl_two_{uid}", "1.0", subdir="dir")
        builder.build(f"pkgl_three_{uid}", "1.0", subdir="dir/nested")

        assert len(manager.add_source(single)) == 1
        assert len(manager.add_source(builder.root / "dir")) == 2
        assert len(manager.catalog) == 3

    def test_target_platform_from_config(self, manager):
        assert manager.target_platform == PlatformIdentifier.parse("py3.11")


class TestGetPackageById:
    """Test package lookup with optional download."""

    def test_registered_package(self, manager, builder, uid):
        manager.add_package_from_file(builder.build(f"pkgl_x_{uid}", "1.0"))
        manager.add_package_from_file(builder.build(f"pkgl_x_{uid}", "2.0"))
        assert str(manager.get_package_by_id(f"PKGL_X_{uid}").version) == "1.0"
        assert str(manager.get_package_by_id(f"pkgl_x_{uid}", PackageVersion("2.0")).version) == "2.0"

    def test_absent_package_without_download(self, manager):
        fetcher = MagicMock()
        manager.fetcher = fetcher
        assert manager.get_package_by_id("pkgl_absent", PackageVersion("1.0")) is None
        fetcher.fetch.assert_not_called()

    def test_absent_package_downloaded(self, builder, uid, tmp_path):
        fetcher = MagicMock()
        fetcher.fetch.return_value = builder.build(f"pkgl_dl_{uid}", "1.3", subdir="remote")
        manager = ResolutionManager(fetcher=fetcher, config=LoaderConfig(target_platform="py3.11"))

        package = manager.get_package_by_id(f"pkgl_dl_{uid}", PackageVersion("1.3"), tmp_path)

        assert str(package.version) == "1.3"
        fetcher.fetch.assert_called_once_with(f"pkgl_dl_{uid}", PackageVersion("1.3"), tmp_path)


class TestRequestPackage:
    """Test top-level requests and the fallback hook."""

    def test_request_adds_root(self, manager, builder, uid):
        name = f"pkgl_req_{uid}"
        package = manager.add_package_from_file(
            builder.build(name, "1.0", files={f"lib/py3.8/{name}.py": "X = 1\n"})
        )

        tree = manager.request_package(package)

        assert manager.tree.children == (tree,)
        assert manager.find_module(f"{name}==1.0").module is sys.modules[name]
        assert manager.find_module(name).version == "1.0"
        assert manager.find_module("pkgl_not_there") is None

    def test_request_twice_fails(self, manager, builder, uid):
        package = manager.add_package_from_file(builder.build(f"pkgl_twice_{uid}", "1.0"))
        manager.request_package(package)
        with pytest.raises(AlreadyResolved):
            manager.request_package(package)
        assert len(manager.tree.children) == 1

    def test_failed_request_adds_no_root(self, manager, builder, uid):
        package = manager.add_package_from_file(
            builder.build(f"pkgl_fail_{uid}", "1.0", flat=[(f"pkgl_gone_{uid}", "1.0")])
        )
        with pytest.raises(MissingDependency):
            manager.request_package(package)
        assert manager.tree.children == ()

    def test_request_packages_returns_nameless_root(self, manager, builder, uid):
        first = manager.add_package_from_file(builder.build(f"pkgl_p1_{uid}", "1.0"))
        second = manager.add_package_from_file(builder.build(f"pkgl_p2_{uid}", "2.0"))

        root = manager.request_packages([first, second])

        assert root.package_id is None
        assert [child.package_id for child in root.children] == [f"pkgl_p1_{uid}", f"pkgl_p2_{uid}"]
        assert root.format_tree().startswith("Root\n")

    def test_fallback_hook_serves_loaded_modules(self, manager, builder, uid):
        name = f"pkgl_hook_{uid}"
        package = manager.add_package_from_file(
            builder.build(name, "1.0", files={f"lib/py3.8/{name}.py": "MARK = 'managed'\n"})
        )
        manager.request_package(package)
        bound = sys.modules.pop(name)

        finder = manager.register_fallback_hook()
        try:
            assert manager.register_fallback_hook() is finder
            assert importlib.import_module(name) is bound
        finally:
            manager.unregister_fallback_hook()
        assert finder not in sys.meta_path
