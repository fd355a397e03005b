# smartbuild/modules/pipeline.py
"""
Build pipeline for one run.

Stages, each callable on its own:
  build_graph -> order -> filter -> execute

Run states:
  IDLE -> GRAPH_BUILT -> ORDERED -> FILTERED -> EXECUTING -> DONE | FAILED
"""

from __future__ import annotations
import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from smartbuild.modules import logger as _logger
from smartbuild.modules.build import BuildExecutor, PackageBuild
from smartbuild.modules.config import RunOptions, config
from smartbuild.modules.errors import ConfigurationError, SmartBuildError
from smartbuild.modules.graph import DependencyGraph
from smartbuild.modules.ignore import filter_ignored
from smartbuild.modules.manifest import LINK_MARKER, PackageDescriptor, to_local_only
from smartbuild.modules.workspace import Workspace


class RunState(Enum):
    IDLE = "idle"
    GRAPH_BUILT = "graph_built"
    ORDERED = "ordered"
    FILTERED = "filtered"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BuildReport:
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: Optional[str] = None
    duration_seconds: float = 0.0
    state: RunState = RunState.IDLE
    skipped_execution: bool = False
    order: List[str] = field(default_factory=list)
    build_list: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    missing: Dict[str, List[str]] = field(default_factory=dict)
    packages: List[PackageBuild] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_seconds": self.duration_seconds,
            "state": self.state.value,
            "skipped_execution": self.skipped_execution,
            "order": self.order,
            "build_list": self.build_list,
            "ignored": self.ignored,
            "missing": self.missing,
            "packages": [p.to_dict() for p in self.packages],
            "error": self.error,
        }

    def write_json(self, out: str = "build-report.json") -> str:
        with open(out, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh, indent=2)
        return out


class BuildPipeline:
    def __init__(self,
                 workspace: Optional[Workspace] = None,
                 options: Optional[RunOptions] = None,
                 ignoring: Optional[Set[str]] = None,
                 executor: Optional[BuildExecutor] = None,
                 check_package_manager: Optional[bool] = None,
                 link_marker: Optional[str] = None):
        self.workspace = workspace or Workspace()
        self.options = options or RunOptions()
        self.ignoring = set(ignoring or ())
        self.executor = executor or BuildExecutor(self.options.build_command, cwd=self.workspace.root)
        if check_package_manager is None:
            check_package_manager = config.getboolean("workspace", "check_package_manager", fallback=True)
        self.check_package_manager = check_package_manager
        self.link_marker = link_marker or config.get("workspace", "link_marker", fallback=LINK_MARKER)
        self.log = _logger.Logger("pipeline")

        self.state = RunState.IDLE
        self.history: List[RunState] = [RunState.IDLE]
        self.graph: Optional[DependencyGraph] = None
        self.report = BuildReport(skipped_execution=self.options.skip_execution)

    def _transition(self, state: RunState):
        self.state = state
        self.history.append(state)
        self.report.state = state
        self.log.debug(f"Run state -> {state.value}")

    # ---------------------------
    # Stages
    # ---------------------------
    def load(self) -> List[PackageDescriptor]:
        if self.check_package_manager:
            manager = self.workspace.require_supported_manager()
            self.log.info(f"SEARCHING for packages using {manager.upper()}")
        return self.workspace.packages()

    def build_graph(self, descriptors: List[PackageDescriptor]) -> DependencyGraph:
        graph = DependencyGraph.from_local_sets(to_local_only(d, self.link_marker) for d in descriptors)
        missing = graph.missing_dependencies()
        self.report.missing = missing
        self._apply_missing_policy(missing)
        self.graph = graph
        self._transition(RunState.GRAPH_BUILT)
        return graph

    def _apply_missing_policy(self, missing: Dict[str, List[str]]):
        policy = self.options.missing_policy
        if not missing or policy == "ignore":
            return
        edges = [f"{pkg} -> {dep}" for pkg, deps in missing.items() for dep in deps]
        if policy == "error":
            raise ConfigurationError(f"Dependencies on unknown workspace packages: {', '.join(edges)}")
        for edge in edges:
            self.log.warning(f"Dependency on unknown workspace package: {edge}")

    def order(self) -> List[str]:
        if self.graph is None:
            raise ConfigurationError("Dependency graph has not been built")
        order = self.graph.topo_sort()
        self.report.order = order
        self._transition(RunState.ORDERED)
        return order

    def filter(self, order: List[str]) -> List[str]:
        # unknown dependency targets are ordered as leaves but have nothing to build
        buildable = [name for name in order if self.graph is None or name in self.graph]
        build_list = filter_ignored(buildable, self.ignoring)
        self.report.ignored = [name for name in buildable if name in self.ignoring]
        self.report.build_list = build_list
        self._transition(RunState.FILTERED)
        return build_list

    def execute(self, build_list: List[str]) -> List[PackageBuild]:
        self._transition(RunState.EXECUTING)
        try:
            if self.options.skip_execution:
                self.log.info("Skip build is set! Skipping")
                builds = self.executor.skip_all(build_list)
            else:
                builds = self.executor.execute(build_list)
        finally:
            # on failure this still holds the succeeded/failed/pending split
            self.report.packages = list(self.executor.builds.values())
        self._transition(RunState.DONE)
        return builds

    # ---------------------------
    # Full run
    # ---------------------------
    def run(self, descriptors: Optional[List[PackageDescriptor]] = None) -> BuildReport:
        start = time.time()
        try:
            if descriptors is None:
                descriptors = self.load()
            self.build_graph(descriptors)
            build_list = self.filter(self.order())

            self.log.info("About to build the following packages")
            for name in build_list:
                self.log.info(f"  {name}")
            self.execute(build_list)
            self.log.success("DONE!")
        except SmartBuildError as e:
            self.report.error = str(e)
            self._transition(RunState.FAILED)
            raise
        finally:
            self.report.completed_at = datetime.now().isoformat()
            self.report.duration_seconds = time.time() - start
        return self.report
