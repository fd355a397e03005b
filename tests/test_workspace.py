"""Tests for workspace discovery and package manager detection."""

import pytest

from smartbuild.modules.errors import ConfigurationError
from smartbuild.modules.workspace import Workspace
from tests.conftest import write_package


def test_load_patterns(make_workspace):
    root = make_workspace([], patterns=("packages/*", "apps/*"))
    assert Workspace(str(root)).load_patterns() == ["packages/*", "apps/*"]


def test_missing_workspace_file(tmp_path):
    with pytest.raises(ConfigurationError, match="No workspace file"):
        Workspace(str(tmp_path)).load_patterns()


def test_workspace_file_without_packages(tmp_path):
    (tmp_path / "pnpm-workspace.yaml").write_text("catalog:\n  react: ^18\n")
    with pytest.raises(ConfigurationError, match="no 'packages' list"):
        Workspace(str(tmp_path)).load_patterns()


def test_invalid_workspace_yaml(tmp_path):
    (tmp_path / "pnpm-workspace.yaml").write_text("packages: [unclosed\n")
    with pytest.raises(ConfigurationError, match="Invalid workspace file"):
        Workspace(str(tmp_path)).load_patterns()


def test_discover_prunes_node_modules(make_workspace):
    root = make_workspace([
        ("packages/b", "b", None),
        ("packages/a", "a", None),
        ("packages/a/node_modules/left-pad", "left-pad", None),
    ])
    found = Workspace(str(root)).discover()
    assert found == [
        str(root / "packages" / "a" / "package.json"),
        str(root / "packages" / "b" / "package.json"),
    ]


def test_discover_pattern_order_and_dedup(make_workspace):
    root = make_workspace([
        ("packages/core", "core", None),
        ("apps/web", "web", None),
    ], patterns=("apps/*", "packages/*", "packages/**"))
    names = [p.split("/")[-2] for p in Workspace(str(root)).discover()]
    assert names == ["web", "core"]


def test_discover_exclusion_patterns(make_workspace):
    root = make_workspace([
        ("packages/core", "core", None),
        ("packages/core/test/fixture", "fixture", None),
    ], patterns=("packages/**", "!**/test/**"))
    names = [p.split("/")[-2] for p in Workspace(str(root)).discover()]
    assert names == ["core"]


def test_discover_exclusion_with_dot_slash(make_workspace):
    root = make_workspace([
        ("packages/a", "a", None),
        ("packages/b", "b", None),
    ], patterns=("./packages/*", "!./packages/b"))
    names = [p.split("/")[-2] for p in Workspace(str(root)).discover()]
    assert names == ["a"]


def test_discover_missing_location_is_skipped(make_workspace):
    root = make_workspace([("packages/a", "a", None)], patterns=("packages/*", "tools/*"))
    assert len(Workspace(str(root)).discover()) == 1


def test_read_manifests_keeps_discovery_order(make_workspace):
    root = make_workspace([(f"packages/p{i:02d}", f"p{i:02d}", None) for i in range(20)])
    ws = Workspace(str(root), max_workers=4)
    names = [d.name for d in ws.packages()]
    assert names == [f"p{i:02d}" for i in range(20)]


def test_duplicate_package_names(make_workspace):
    root = make_workspace([("packages/a", "same", None), ("packages/b", "same", None)])
    with pytest.raises(ConfigurationError, match="declared twice"):
        Workspace(str(root)).packages()


def test_dependency_fields(make_workspace):
    root = make_workspace([])
    path = write_package(root, "packages/a", "a", {"b": "workspace:*"})
    path.write_text('{"name": "a", "dependencies": {"b": "workspace:*"}, "devDependencies": {"c": "workspace:*"}}')
    ws = Workspace(str(root), dependency_fields=["dependencies", "devDependencies"])
    assert ws.packages()[0].dependencies == {"b": "workspace:*", "c": "workspace:*"}


class TestPackageManager:
    def test_pnpm(self, make_workspace):
        root = make_workspace([])
        assert Workspace(str(root)).require_supported_manager() == "pnpm"

    def test_none_found(self, make_workspace):
        root = make_workspace([], lockfiles=())
        with pytest.raises(ConfigurationError, match="No package manager"):
            Workspace(str(root)).detect_package_manager()

    def test_multiple_found(self, make_workspace):
        root = make_workspace([], lockfiles=("pnpm-lock.yaml", "yarn.lock"))
        with pytest.raises(ConfigurationError, match="Multiple package managers found: pnpm, yarn"):
            Workspace(str(root)).detect_package_manager()

    def test_unsupported(self, make_workspace):
        root = make_workspace([], lockfiles=("package-lock.json",))
        ws = Workspace(str(root))
        assert ws.detect_package_manager() == "npm"
        with pytest.raises(ConfigurationError, match="Only pnpm"):
            ws.require_supported_manager()
