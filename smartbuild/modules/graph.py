# smartbuild/modules/graph.py

from typing import Dict, Iterable, List

from smartbuild.modules.errors import CycleError
from smartbuild.modules.manifest import LocalDependencySet

_IN_PROGRESS = 1
_DONE = 2


class DependencyGraph:
    """
    Local dependency graph of a workspace.
    Edges point from a package to the local packages it depends on; a target
    that is not itself a package is kept as a dangling edge.
    """

    def __init__(self):
        self.graph: Dict[str, List[str]] = {}  # {package: [dependencies]}

    @classmethod
    def from_local_sets(cls, local_sets: Iterable[LocalDependencySet]) -> "DependencyGraph":
        graph = cls()
        for local in local_sets:
            graph.add_package(local.name, local.local_deps)
        return graph

    def add_package(self, package: str, dependencies: Iterable[str] = ()):
        """Add a package and its dependencies; edges already present are kept once."""
        deps = self.graph.setdefault(package, [])
        for dep in dependencies:
            if dep not in deps:
                deps.append(dep)

    @property
    def packages(self) -> List[str]:
        return list(self.graph)

    def dependencies_of(self, package: str) -> List[str]:
        return list(self.graph.get(package, []))

    def __contains__(self, package):
        return package in self.graph

    def __len__(self):
        return len(self.graph)

    def missing_dependencies(self) -> Dict[str, List[str]]:
        """Dangling edges grouped by the package that declares them."""
        missing = {}
        for package, deps in self.graph.items():
            absent = [d for d in deps if d not in self.graph]
            if absent:
                missing[package] = absent
        return missing

    def _start(self, node: str, state: Dict[str, int], path: List[str], stack: list):
        state[node] = _IN_PROGRESS
        path.append(node)
        stack.append((node, iter(self.graph.get(node, []))))

    def topo_sort(self) -> List[str]:
        """
        Build order respecting dependencies: every package comes after all of
        its local dependencies. Packages are visited in insertion order, so the
        result is stable for a stable discovery order.
        Raises CycleError on the first cycle met.
        """
        state: Dict[str, int] = {}
        order: List[str] = []
        path: List[str] = []

        for root in self.graph:
            if root in state:
                continue
            # explicit stack of (node, remaining deps); path mirrors its nodes
            stack: list = []
            self._start(root, state, path, stack)
            while stack:
                node, deps = stack[-1]
                for dep in deps:
                    mark = state.get(dep)
                    if mark == _DONE:
                        continue
                    if mark == _IN_PROGRESS:
                        raise CycleError(path[path.index(dep):] + [dep])
                    self._start(dep, state, path, stack)
                    break
                else:
                    stack.pop()
                    path.pop()
                    state[node] = _DONE
                    order.append(node)
        return order

    def detect_cycles(self) -> List[List[str]]:
        """Every distinct cycle reachable in the graph, without raising."""
        cycles: List[List[str]] = []
        seen = set()
        state: Dict[str, int] = {}
        path: List[str] = []

        for root in self.graph:
            if root in state:
                continue
            stack: list = []
            self._start(root, state, path, stack)
            while stack:
                node, deps = stack[-1]
                for dep in deps:
                    mark = state.get(dep)
                    if mark == _IN_PROGRESS:
                        cycle = path[path.index(dep):]
                        key = frozenset(cycle)
                        if key not in seen:
                            seen.add(key)
                            cycles.append(cycle + [dep])
                    elif mark is None:
                        self._start(dep, state, path, stack)
                        break
                else:
                    stack.pop()
                    path.pop()
                    state[node] = _DONE
        return cycles

    def export_dot(self, output: str = "deps.dot") -> str:
        lines = ["digraph dependencies {"]
        for pkg, deps in self.graph.items():
            if not deps:
                lines.append(f'  "{pkg}";')
            for dep in deps:
                lines.append(f'  "{dep}" -> "{pkg}";')
        lines.append("}")
        with open(output, "w", encoding="utf-8") as fh:
            fh.write("\n".join(lines) + "\n")
        return output
