# smartbuild/modules/errors.py
"""
Error taxonomy shared by every stage of a run.

All errors are fatal for the run: modules raise them, only the CLI catches.
"""

from typing import List, Optional


class SmartBuildError(Exception):
    pass


class ConfigurationError(SmartBuildError):
    """Workspace is missing, ambiguous or inconsistent."""


class CycleError(SmartBuildError):
    """The local dependency graph is not acyclic."""

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.cycle)}")


class BuildError(SmartBuildError):
    """A package's build command failed to launch or exited non-zero."""

    def __init__(self, package: str, reason: str, result=None):
        self.package = package
        self.reason = reason
        self.result = result
        super().__init__(f"Build of {package} failed: {reason}")

    @property
    def detail(self) -> Optional[str]:
        if self.result is None:
            return None
        parts = [p for p in (self.result.stderr, self.result.stdout) if p]
        return "\n".join(parts).strip() or None
