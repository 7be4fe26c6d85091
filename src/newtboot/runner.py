"""Configure/build/install sequencing for a single target.

Sequence (each failure aborts the rest and propagates):
    1. Extract the vendored archive into the scratch build root
    2. Change into the extracted source tree
    3. ./configure --prefix=<install prefix> <recipe flags>
    4. make <recipe overrides> <install target>
    5. Probe the install prefix with pkg-config, scoped to that prefix

Process state discipline:
    Propagated CPPFLAGS/LDFLAGS are exported before step 1 and cleared after
    step 5, on success and on failure. The working directory is restored to
    its previous value on every exit path.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .callbacks import BootstrapCallback, NullCallback
from .environment import BuildEnvironment
from .errors import BuildError, ConfigureError, ExtractionError, InstallError, format_command
from .extract import ArchiveExtractor
from .flags import FlagPropagator, PropagatedFlags
from .models import ProbedLibrary, TargetPhase
from .output import log_detail
from .probe import LibraryProbe
from .subprocess_utils import run_step
from .targets import BuildTarget
from .tools import ToolHandle

logger = logging.getLogger(__name__)


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Change into path, restoring the previous working directory on exit."""
    previous = os.getcwd()
    os.chdir(path)
    try:
        yield path
    finally:
        os.chdir(previous)


class NativeBuildRunner:
    """Builds one target from its vendored sources and probes the result."""

    def __init__(
        self,
        tool: ToolHandle,
        probe: LibraryProbe,
        extractor: ArchiveExtractor | None = None,
        propagator: FlagPropagator | None = None,
        callback: BootstrapCallback | None = None,
        capture_logs: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            tool: Verified GNU Make handle, located once per bootstrap
            probe: pkg-config probe used after installation
            extractor: Archive extractor (default: new ArchiveExtractor)
            propagator: Flag propagator (default: operates on os.environ)
            callback: Progress callback
            capture_logs: Write configure/make output to a per-target log file
                under the build root instead of the console
        """
        self.tool = tool
        self.probe = probe
        self.callback = callback if callback is not None else NullCallback()
        self.extractor = extractor if extractor is not None else ArchiveExtractor(self.callback)
        self.propagator = propagator if propagator is not None else FlagPropagator()
        self.capture_logs = capture_logs

    def configure_command(self, target: BuildTarget, env: BuildEnvironment) -> list[str]:
        return ["./configure", "--prefix", str(env.install_prefix), *target.recipe.configure_args]

    def make_command(self, target: BuildTarget) -> list[str]:
        recipe = target.recipe
        return self.tool.command(*recipe.make_args, recipe.install_target)

    def log_path(self, target: BuildTarget, env: BuildEnvironment) -> Path | None:
        if not self.capture_logs:
            return None
        return env.build_root / f"{target.versioned_name}.log"

    def run(self, target: BuildTarget, env: BuildEnvironment, flags: PropagatedFlags | None = None) -> ProbedLibrary:
        """Build, install and probe one target.

        Args:
            target: Target to build
            env: The target's build paths
            flags: Flags propagated from already-built dependencies

        Returns:
            The installed library, probed for static linking.

        Raises:
            ExtractionError: If the archive cannot be unpacked.
            ConfigureError: If ./configure exits non-zero.
            BuildError: If make exits non-zero.
            InstallError: If make succeeded but installed no metadata.
            ProbeError: If the installed library cannot be probed.
        """
        flags = flags if flags is not None else PropagatedFlags()
        self.propagator.apply(flags)
        if not flags.is_empty:
            logger.debug("Propagating CPPFLAGS=%r LDFLAGS=%r to %s", flags.cppflags, flags.ldflags, target)

        log_path = self.log_path(target, env)
        try:
            if log_path is not None and log_path.exists():
                log_path.unlink()
            self.extractor.extract(env.archive_path, target.compression, env.build_root, task_name=target.name)
            if not env.source_dir.is_dir():
                raise ExtractionError(f"{env.archive_path.name} did not unpack into {env.source_dir}", target=target.name)

            with working_directory(env.source_dir):
                configure = self.configure_command(target, env)
                self.callback.on_progress(target.name, TargetPhase.CONFIGURING, 0, 0, format_command(configure))
                log_detail(f"Running: {format_command(configure)}", verbose_only=True)
                run_step(configure, target.name, ConfigureError, log_path=log_path)

                make = self.make_command(target)
                self.callback.on_progress(target.name, TargetPhase.BUILDING, 0, 0, format_command(make))
                log_detail(f"Running: {format_command(make)}", verbose_only=True)
                run_step(make, target.name, BuildError, log_path=log_path)

                self._verify_install(target, env)

                self.callback.on_progress(target.name, TargetPhase.PROBING, 0, 0, f"pkg-config {target.pkg_config_name}")
                return self.probe.probe(
                    target.pkg_config_name,
                    target.version,
                    search_path=env.pkg_config_dir,
                    want_static=True,
                )
        finally:
            self.propagator.clear()

    def _verify_install(self, target: BuildTarget, env: BuildEnvironment) -> None:
        """Check that the install step produced pkg-config metadata."""
        metadata = env.pkg_config_dir / f"{target.pkg_config_name}.pc"
        if not metadata.is_file():
            raise InstallError(
                f"`{format_command(self.make_command(target))}` succeeded for {target} but installed no {metadata}",
                target=target.name,
            )
