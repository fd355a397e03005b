# smartbuild/modules/manifest.py
"""
Package manifests (package.json) and their local dependency view.

Usage:
  - descriptor = read_manifest("packages/ui/package.json")
  - local = to_local_only(descriptor)   # keeps "workspace:" dependencies only
"""

from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from smartbuild.modules.errors import ConfigurationError

LINK_MARKER = "workspace:"
DEPENDENCY_FIELDS = ("dependencies",)


@dataclass(frozen=True)
class PackageDescriptor:
    name: str
    dependencies: Dict[str, str] = field(default_factory=dict)
    path: Optional[str] = None


@dataclass(frozen=True)
class LocalDependencySet:
    name: str
    local_deps: Tuple[str, ...] = ()


def descriptor_from_data(data: Any, path: Optional[str] = None,
                         fields: Sequence[str] = DEPENDENCY_FIELDS) -> PackageDescriptor:
    """Build a descriptor from already-parsed manifest data."""
    where = path or "<manifest>"
    if not isinstance(data, dict):
        raise ConfigurationError(f"Manifest {where} is not a JSON object")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"Manifest {where} has no package name")

    deps: Dict[str, str] = {}
    for fld in fields:
        section = data.get(fld)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigurationError(f"Field '{fld}' in {where} must be an object")
        for dep, spec in section.items():
            # first field wins when a name is declared twice
            deps.setdefault(dep, spec)
    return PackageDescriptor(name=name.strip(), dependencies=deps, path=path)


def read_manifest(path: str, fields: Sequence[str] = DEPENDENCY_FIELDS) -> PackageDescriptor:
    """Read one package.json from disk."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as e:
        raise ConfigurationError(f"Cannot read manifest {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Malformed manifest {path}: {e}") from e
    return descriptor_from_data(data, path=os.path.abspath(path), fields=fields)


def is_local_spec(spec: Any, marker: str = LINK_MARKER) -> bool:
    return isinstance(spec, str) and spec.startswith(marker)


def to_local_only(descriptor: PackageDescriptor, marker: str = LINK_MARKER) -> LocalDependencySet:
    """Drop every dependency that does not resolve inside the workspace."""
    if not descriptor.dependencies:
        return LocalDependencySet(descriptor.name)
    local = tuple(name for name, spec in descriptor.dependencies.items() if is_local_spec(spec, marker))
    return LocalDependencySet(descriptor.name, local)
