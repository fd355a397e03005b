# smartbuild/modules/workspace.py
"""
Workspace discovery.

- Reads pnpm-workspace.yaml for the list of package location patterns.
- Expands each pattern into the package.json files beneath it (node_modules pruned).
- Identifies the package manager from the lockfile in the workspace root.
- Reads every manifest concurrently; results keep discovery order.
"""

from __future__ import annotations
import fnmatch
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

import yaml

from smartbuild.modules import logger as _logger
from smartbuild.modules.config import config
from smartbuild.modules.errors import ConfigurationError
from smartbuild.modules.manifest import DEPENDENCY_FIELDS, PackageDescriptor, read_manifest

WORKSPACE_FILE = "pnpm-workspace.yaml"
MANIFEST_NAME = "package.json"
PRUNED_DIRS = {"node_modules"}
GLOB_CHARS = set("*?[")

LOCK_FILES: Dict[str, str] = {
    "pnpm": "pnpm-lock.yaml",
    "yarn": "yarn.lock",
    "npm": "package-lock.json",
}
SUPPORTED_MANAGER = "pnpm"


class Workspace:
    def __init__(self,
                 root: str = ".",
                 workspace_file: Optional[str] = None,
                 manifest_name: Optional[str] = None,
                 dependency_fields: Optional[Sequence[str]] = None,
                 max_workers: Optional[int] = None):
        self.root = os.path.abspath(root)
        self.workspace_file = workspace_file or config.get("workspace", "workspace_file", fallback=WORKSPACE_FILE)
        self.manifest_name = manifest_name or config.get("workspace", "manifest_name", fallback=MANIFEST_NAME)
        self.dependency_fields = tuple(
            dependency_fields or config.getlist("workspace", "dependency_fields", fallback=list(DEPENDENCY_FIELDS))
        )
        self.max_workers = max_workers or config.getint("workspace", "max_workers", fallback=8) or 8
        self.log = _logger.Logger("workspace")

    # ---------------------------
    # Package manager
    # ---------------------------
    def detect_package_manager(self) -> str:
        found = [manager for manager, lock in LOCK_FILES.items()
                 if os.path.isfile(os.path.join(self.root, lock))]
        if not found:
            raise ConfigurationError(f"No package manager lockfile found in {self.root}")
        if len(found) > 1:
            raise ConfigurationError(f"Multiple package managers found: {', '.join(found)}")
        return found[0]

    def require_supported_manager(self) -> str:
        manager = self.detect_package_manager()
        if manager != SUPPORTED_MANAGER:
            raise ConfigurationError(f"Only {SUPPORTED_MANAGER} workspaces are supported, {manager} found")
        return manager

    # ---------------------------
    # Workspace descriptor
    # ---------------------------
    def load_patterns(self) -> List[str]:
        path = os.path.join(self.root, self.workspace_file)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except FileNotFoundError as e:
            raise ConfigurationError(f"No workspace file found at {path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid workspace file {path}: {e}") from e

        packages = data.get("packages") if isinstance(data, dict) else None
        if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
            raise ConfigurationError(f"Workspace file {path} has no 'packages' list")
        return packages

    # ---------------------------
    # Manifest discovery
    # ---------------------------
    @staticmethod
    def _clean_pattern(pattern: str) -> str:
        pattern = pattern.strip()
        while pattern.startswith("./"):
            pattern = pattern[2:]
        return pattern.strip("/")

    @staticmethod
    def _base_dir(pattern: str) -> str:
        """Longest leading part of a pattern without glob characters."""
        parts = Workspace._clean_pattern(pattern).split("/")
        base = []
        for part in parts:
            if GLOB_CHARS & set(part):
                break
            base.append(part)
        return os.path.join(*base) if base else ""

    def _walk_manifests(self, base: str) -> List[str]:
        start = os.path.join(self.root, base)
        found = []
        if not os.path.isdir(start):
            self.log.warning(f"Package location {start} does not exist")
            return found
        for dirpath, dirs, files in os.walk(start):
            dirs[:] = sorted(d for d in dirs if d not in PRUNED_DIRS)
            if self.manifest_name in files:
                found.append(os.path.join(dirpath, self.manifest_name))
        return found

    def _excluded(self, manifest_path: str, exclusions: List[str]) -> bool:
        rel_dir = os.path.relpath(os.path.dirname(manifest_path), self.root).replace(os.sep, "/")
        return any(fnmatch.fnmatch(rel_dir, pat) or fnmatch.fnmatch(rel_dir + "/", pat)
                   for pat in exclusions)

    def discover(self, patterns: Optional[List[str]] = None) -> List[str]:
        """Return manifest paths in pattern order, without duplicates."""
        patterns = self.load_patterns() if patterns is None else patterns
        includes = [p for p in patterns if not p.startswith("!")]
        exclusions = [self._clean_pattern(p[1:]) for p in patterns if p.startswith("!")]

        seen = set()
        manifests = []
        for pattern in includes:
            for path in self._walk_manifests(self._base_dir(pattern)):
                if path in seen or self._excluded(path, exclusions):
                    continue
                seen.add(path)
                manifests.append(path)
        self.log.debug(f"Discovered {len(manifests)} manifest(s) from {len(includes)} pattern(s)")
        return manifests

    # ---------------------------
    # Manifest reading
    # ---------------------------
    def read_manifests(self, paths: List[str]) -> List[PackageDescriptor]:
        if not paths:
            return []
        workers = min(self.max_workers, len(paths))
        with ThreadPoolExecutor(max_workers=workers) as ex:
            descriptors = list(ex.map(lambda p: read_manifest(p, self.dependency_fields), paths))

        by_name: Dict[str, str] = {}
        for desc in descriptors:
            if desc.name in by_name:
                raise ConfigurationError(
                    f"Package name {desc.name} declared twice: {by_name[desc.name]} and {desc.path}"
                )
            by_name[desc.name] = desc.path
        return descriptors

    def packages(self) -> List[PackageDescriptor]:
        return self.read_manifests(self.discover())
