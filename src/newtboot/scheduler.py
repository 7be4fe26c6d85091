"""Dependency ordering for bootstrap targets.

Resolves target dependencies and emits targets in topological order, so a
target is only built after every target it depends on has been built and
probed. Among targets whose dependencies are satisfied, registration order
wins, which keeps the build order of independent targets fixed.
"""

from typing import Iterable

from .targets import BuildTarget


class CyclicDependencyError(ValueError):
    """Raised when the dependency graph contains a cycle."""

    pass


class DependencyScheduler:
    """Orders targets based on their dependency DAG.

    Usage:
        scheduler = DependencyScheduler()
        scheduler.add_target(popt)
        scheduler.add_target(newt)
        scheduler.validate()  # raises CyclicDependencyError if cycle detected

        for target in scheduler.build_order():
            ...
    """

    def __init__(self, targets: Iterable[BuildTarget] = ()) -> None:
        self._targets: dict[str, BuildTarget] = {}
        for target in targets:
            self.add_target(target)

    def add_target(self, target: BuildTarget) -> None:
        """Add a target to the scheduler.

        Raises:
            ValueError: If a target with the same name already exists.
        """
        if target.name in self._targets:
            raise ValueError(f"Duplicate target name: {target.name}")
        self._targets[target.name] = target

    def validate(self) -> None:
        """Validate the dependency graph.

        Checks:
        1. All dependency references point to registered targets
        2. No cyclic dependencies exist

        Raises:
            ValueError: If a dependency references an unregistered target.
            CyclicDependencyError: If the dependency graph contains a cycle.
        """
        self._validate_references()
        self._detect_cycles()

    def _validate_references(self) -> None:
        for target in self._targets.values():
            for dep_name in target.dependencies:
                if dep_name not in self._targets:
                    raise ValueError(f"Target '{target.name}' depends on unknown target '{dep_name}'")

    def _detect_cycles(self) -> None:
        """Detect cycles using DFS with coloring (white/gray/black).

        Raises:
            CyclicDependencyError: If a cycle is detected.
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {name: WHITE for name in self._targets}

        def dfs(name: str, path: list[str]) -> None:
            color[name] = GRAY
            path.append(name)
            for dep_name in self._targets[name].dependencies:
                if color[dep_name] == GRAY:
                    # Back edge
                    cycle_start = path.index(dep_name)
                    cycle = path[cycle_start:] + [dep_name]
                    raise CyclicDependencyError(f"Cyclic dependency detected: {' -> '.join(cycle)}")
                if color[dep_name] == WHITE:
                    dfs(dep_name, path)
            path.pop()
            color[name] = BLACK

        for name in self._targets:
            if color[name] == WHITE:
                dfs(name, [])

    def build_order(self) -> list[BuildTarget]:
        """Return all targets, each one after all of its dependencies.

        Raises:
            ValueError: If the graph references unknown targets.
            CyclicDependencyError: If the graph contains a cycle.
        """
        self.validate()
        done: set[str] = set()
        order: list[BuildTarget] = []
        while len(order) < len(self._targets):
            ready = [
                target
                for target in self._targets.values()
                if target.name not in done and all(dep in done for dep in target.dependencies)
            ]
            # validate() guarantees progress
            first = ready[0]
            order.append(first)
            done.add(first.name)
        return order
