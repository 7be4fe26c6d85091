"""Bootstrap orchestrator: system probe, fallback decision and target sequencing.

State machine:

    IDLE -> SYSTEM_PROBE_ATTEMPTED -> SATISFIED                      (system newt usable)
                                   -> BOOTSTRAP_REQUIRED             (absent, too old, or forced static)
                                        -> DEPENDENCY_BUILDING (x N, dependency order)
                                        -> DONE
    any BootstrapError after the system probe              -> FATAL_FAILURE

The system probe is the only place where a probe failure is a policy branch
rather than an error: a missing or outdated system library routes to
BOOTSTRAP_REQUIRED. Every later failure is terminal for the whole bootstrap,
and no target is attempted after one fails.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from .artifacts import BindingArtifacts
from .callbacks import BootstrapCallback, NullCallback
from .config import BootstrapConfig
from .environment import BuildEnvironment
from .errors import BootstrapError, ProbeError, VersionMismatchError
from .flags import PropagatedFlags
from .models import ProbedLibrary, TargetPhase
from .output import TimedLogger, log, log_warning
from .probe import LibraryProbe
from .runner import NativeBuildRunner
from .scheduler import DependencyScheduler
from .targets import TARGETS, TOP_LEVEL_TARGET, BuildTarget
from .tools import ToolHandle, ToolLocator

logger = logging.getLogger(__name__)


class BootstrapState(Enum):
    """State of the bootstrap state machine."""

    IDLE = "idle"
    SYSTEM_PROBE_ATTEMPTED = "system_probe_attempted"
    SATISFIED = "satisfied"
    BOOTSTRAP_REQUIRED = "bootstrap_required"
    DEPENDENCY_BUILDING = "dependency_building"
    DONE = "done"
    FATAL_FAILURE = "fatal_failure"


class PropagationState:
    """Libraries completed so far in this bootstrap session, in completion order."""

    def __init__(self) -> None:
        self._libraries: dict[str, ProbedLibrary] = {}

    def record(self, target_name: str, library: ProbedLibrary) -> None:
        """Record a successfully built and probed target."""
        self._libraries[target_name] = library

    @property
    def completed_names(self) -> list[str]:
        return list(self._libraries)

    @property
    def libraries(self) -> list[ProbedLibrary]:
        return list(self._libraries.values())

    def flags_for(self, dependency_names: Iterable[str]) -> PropagatedFlags:
        """Flags built from the given completed dependencies, in completion order.

        Raises:
            KeyError: If a dependency has not completed yet.
        """
        wanted = set(dependency_names)
        missing = wanted - set(self._libraries)
        if missing:
            raise KeyError(f"Dependencies not built yet: {', '.join(sorted(missing))}")
        return PropagatedFlags.from_libraries([lib for name, lib in self._libraries.items() if name in wanted])


@dataclass
class BootstrapResult:
    """Outcome of one bootstrap run.

    Attributes:
        state: Terminal state (SATISFIED, DONE or FATAL_FAILURE)
        libraries: Probed libraries by target name, in completion order
        artifacts: Compile/link inputs for the binding layer (None on failure)
        error: The error that caused FATAL_FAILURE
        failed_target: Name of the target being built when the error occurred
        system_probe_error: Why the system library was not used, if it was not found
        total_elapsed: Wall-clock time in seconds
    """

    state: BootstrapState
    libraries: dict[str, ProbedLibrary] = field(default_factory=dict)
    artifacts: Optional[BindingArtifacts] = None
    error: Optional[BootstrapError] = None
    failed_target: Optional[str] = None
    system_probe_error: Optional[ProbeError] = None
    total_elapsed: float = 0.0

    @property
    def success(self) -> bool:
        return self.state in (BootstrapState.SATISFIED, BootstrapState.DONE)

    @property
    def built_targets(self) -> list[str]:
        return list(self.libraries) if self.state != BootstrapState.SATISFIED else []


RunnerFactory = Callable[[ToolHandle], NativeBuildRunner]


class Orchestrator:
    """Decides whether to bootstrap and builds every target in dependency order.

    Args:
        config: Bootstrap configuration.
        probe: pkg-config probe (shared by the system probe and the runners).
        locator: Build tool locator, consulted only when bootstrapping.
        runner_factory: Creates the build runner for the located tool.
        callback: Progress callback.
        targets: Targets to bootstrap (default: the full registry).
        top_level: Target whose system install makes the bootstrap unnecessary.
        capture_logs: Send native build output of the default runner to per-target
            log files.
    """

    def __init__(
        self,
        config: BootstrapConfig,
        probe: Optional[LibraryProbe] = None,
        locator: Optional[ToolLocator] = None,
        runner_factory: Optional[RunnerFactory] = None,
        callback: Optional[BootstrapCallback] = None,
        targets: Optional[Iterable[BuildTarget]] = None,
        top_level: BuildTarget = TOP_LEVEL_TARGET,
        capture_logs: bool = False,
    ) -> None:
        self.config = config
        self.probe = probe if probe is not None else LibraryProbe()
        self.locator = locator if locator is not None else ToolLocator()
        self.callback = callback if callback is not None else NullCallback()
        self.runner_factory = runner_factory if runner_factory is not None else self._default_runner
        self.top_level = top_level
        self.capture_logs = capture_logs
        self.build_order = DependencyScheduler(targets if targets is not None else TARGETS.values()).build_order()
        self.state = BootstrapState.IDLE
        self.history: list[BootstrapState] = [BootstrapState.IDLE]

    def _default_runner(self, tool: ToolHandle) -> NativeBuildRunner:
        return NativeBuildRunner(tool, self.probe, callback=self.callback, capture_logs=self.capture_logs)

    def _transition(self, state: BootstrapState) -> None:
        logger.debug("Bootstrap state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def run(self) -> BootstrapResult:
        """Run the bootstrap to a terminal state.

        Never raises BootstrapError; failures are reported as FATAL_FAILURE in
        the returned result.
        """
        start_time = time.monotonic()
        result = self._run()
        result.total_elapsed = time.monotonic() - start_time
        return result

    def _run(self) -> BootstrapResult:
        top = self.top_level
        system_library: Optional[ProbedLibrary] = None
        system_error: Optional[ProbeError] = None

        try:
            system_library = self.probe.probe(top.pkg_config_name, top.version)
        except ProbeError as e:
            system_error = e
        self._transition(BootstrapState.SYSTEM_PROBE_ATTEMPTED)

        if system_library is not None and not self.config.force_static:
            log(f"Using system {top.pkg_config_name} {system_library.version}")
            self._transition(BootstrapState.SATISFIED)
            return BootstrapResult(
                state=BootstrapState.SATISFIED,
                libraries={top.name: system_library},
                artifacts=BindingArtifacts.from_libraries([system_library], static=False),
            )

        if system_library is not None:
            log(f"Static build requested, ignoring system {top.pkg_config_name} {system_library.version}")
        elif isinstance(system_error, VersionMismatchError):
            log_warning(f"System {top.pkg_config_name} {system_error.found} is older than {system_error.required}, bootstrapping")
        else:
            log(f"System {top.pkg_config_name} not found, bootstrapping")
        self._transition(BootstrapState.BOOTSTRAP_REQUIRED)

        propagation = PropagationState()
        current: Optional[BuildTarget] = None
        try:
            tool = self.locator.locate()
            log(f"Using build tool {tool.name}", verbose_only=True)
            runner = self.runner_factory(tool)

            total = len(self.build_order)
            for index, target in enumerate(self.build_order, start=1):
                current = target
                self._transition(BootstrapState.DEPENDENCY_BUILDING)
                env = BuildEnvironment.for_target(self.config.out_dir, self.config.project_dir, target)
                flags = propagation.flags_for(target.dependencies)
                with TimedLogger(f"Building {target}", phase=(index, total)):
                    library = runner.run(target, env, flags)
                propagation.record(target.name, library)
                self.callback.on_progress(target.name, TargetPhase.DONE, 1, 1, f"{library.name} {library.version}")
        except BootstrapError as e:
            failed = current.name if current is not None else None
            if failed is not None:
                self.callback.on_progress(failed, TargetPhase.FAILED, 0, 0, str(e))
            self._transition(BootstrapState.FATAL_FAILURE)
            return BootstrapResult(
                state=BootstrapState.FATAL_FAILURE,
                libraries=dict(zip(propagation.completed_names, propagation.libraries)),
                error=e,
                failed_target=failed,
                system_probe_error=system_error,
            )

        self._transition(BootstrapState.DONE)
        libraries = dict(zip(propagation.completed_names, propagation.libraries))
        return BootstrapResult(
            state=BootstrapState.DONE,
            libraries=libraries,
            artifacts=BindingArtifacts.from_libraries(list(reversed(propagation.libraries)), static=True),
            system_probe_error=system_error,
        )
