# smartbuild/modules/build.py
"""
Sequential build executor.

Runs the build command of each package in the given order, waiting for one
to exit before starting the next. The first failure stops the run: later
packages are never attempted.
"""

from __future__ import annotations
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from smartbuild.modules import logger as _logger
from smartbuild.modules.config import DEFAULT_BUILD_COMMAND
from smartbuild.modules.errors import BuildError
from smartbuild.modules.runner import CommandResult, CommandRunner

PLACEHOLDER = "{package}"


class PackageStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PackageBuild:
    name: str
    command: str
    status: PackageStatus = PackageStatus.PENDING
    result: Optional[CommandResult] = None

    def to_dict(self):
        data = {"name": self.name, "command": self.command, "status": self.status.value}
        if self.result is not None:
            data["returncode"] = self.result.returncode
            data["duration"] = self.result.duration
            data["error"] = self.result.error
        return data


class BuildExecutor:
    def __init__(self,
                 command_template: str = DEFAULT_BUILD_COMMAND,
                 runner: Optional[CommandRunner] = None,
                 cwd: Optional[str] = None):
        self.command_template = command_template
        self.runner = runner or CommandRunner()
        self.cwd = cwd
        self.log = _logger.Logger("build")
        self.builds: Dict[str, PackageBuild] = {}
        if PLACEHOLDER not in command_template:
            self.log.warning(f"Build command has no {PLACEHOLDER} placeholder: {command_template}")

    def command_for(self, package: str) -> str:
        return self.command_template.replace(PLACEHOLDER, shlex.quote(package))

    def plan(self, packages: List[str]) -> List[PackageBuild]:
        """Register every package as pending, in build order."""
        self.builds = {name: PackageBuild(name, self.command_for(name)) for name in packages}
        return list(self.builds.values())

    def skip_all(self, packages: List[str]) -> List[PackageBuild]:
        planned = self.plan(packages)
        for build in planned:
            build.status = PackageStatus.SKIPPED
        return planned

    def execute(self, packages: List[str]) -> List[PackageBuild]:
        planned = self.plan(packages)
        for build in planned:
            self._build_single(build)
        return planned

    def _build_single(self, build: PackageBuild):
        self.log.info(f"Building {build.name}")
        build.status = PackageStatus.RUNNING
        result = self.runner.run(build.command, cwd=self.cwd)
        build.result = result

        if not result.ok():
            build.status = PackageStatus.FAILED
            reason = result.error or f"exited with status {result.returncode}"
            self.log.error(f"Failed building {build.name}: {reason}")
            raise BuildError(build.name, reason, result)

        build.status = PackageStatus.SUCCEEDED
        if result.stdout:
            self.log.debug(result.stdout.rstrip())
        self.log.success(f"Built: {build.name} ({result.duration:.1f}s)")
