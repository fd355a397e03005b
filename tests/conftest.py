"""Shared fixtures: on-disk pnpm workspaces and a scripted command runner."""

import json
import shlex
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from smartbuild.modules.config import DEFAULT_LOCATIONS, config
from smartbuild.modules.runner import CommandResult


@pytest.fixture(autouse=True)
def default_config():
    """The CLI points the shared config at the workspace root; put it back."""
    yield
    config.reload(list(DEFAULT_LOCATIONS))


class FakeRunner:
    """Records commands; fails the ones whose command mentions a failing package."""

    def __init__(self, failing=(), launch_errors=()):
        self.failing = set(failing)
        self.launch_errors = set(launch_errors)
        self.commands: List[str] = []

    def run(self, command, cwd=None):
        self.commands.append(command)
        package = self.package_of(command)
        if package in self.launch_errors:
            return CommandResult(command, None, error="command not found")
        if package in self.failing:
            return CommandResult(command, 2, stdout="compiling", stderr="tsc: 3 errors",
                                 error="exited with status 2")
        return CommandResult(command, 0, stdout=f"built {package}")

    @staticmethod
    def package_of(command) -> str:
        tokens = shlex.split(command)
        if "--filter" in tokens:
            return tokens[tokens.index("--filter") + 1]
        return tokens[-1]

    @property
    def built(self) -> List[str]:
        return [self.package_of(c) for c in self.commands]


@pytest.fixture
def fake_runner():
    return FakeRunner()


def write_package(root: Path, rel_dir: str, name: str,
                  dependencies: Optional[Dict[str, str]] = None) -> Path:
    pkg_dir = root / rel_dir
    pkg_dir.mkdir(parents=True, exist_ok=True)
    manifest = {"name": name, "version": "1.0.0"}
    if dependencies is not None:
        manifest["dependencies"] = dependencies
    path = pkg_dir / "package.json"
    path.write_text(json.dumps(manifest), encoding="utf-8")
    return path


@pytest.fixture
def make_workspace(tmp_path):
    """Create a pnpm workspace under tmp_path.

    packages: list of (relative dir, name, dependencies) tuples.
    """

    def _make(packages, patterns=("packages/*",), lockfiles=("pnpm-lock.yaml",), ignore=None):
        (tmp_path / "pnpm-workspace.yaml").write_text(
            "packages:\n" + "".join(f"  - '{p}'\n" for p in patterns), encoding="utf-8"
        )
        for lock in lockfiles:
            (tmp_path / lock).write_text("", encoding="utf-8")
        for rel_dir, name, deps in packages:
            write_package(tmp_path, rel_dir, name, deps)
        if ignore is not None:
            (tmp_path / ".sbignore").write_text("\n".join(ignore) + "\n", encoding="utf-8")
        return tmp_path

    return _make


@pytest.fixture
def abc_workspace(make_workspace):
    """a has no local deps, b depends on a, c depends on b and a."""
    return make_workspace([
        ("packages/c", "c", {"b": "workspace:*", "a": "workspace:^1.0.0", "lodash": "^4.17.21"}),
        ("packages/a", "a", {"react": "^18.0.0"}),
        ("packages/b", "b", {"a": "workspace:*"}),
    ])
