"""Unit tests for the bootstrap orchestrator.

The system probe, the build tool locator and the build runner are replaced
with fakes, so every scenario runs without make, pkg-config or archives.
"""

import os
from io import StringIO
from pathlib import Path
from unittest.mock import patch

import pytest

from newtboot import output
from newtboot.callbacks import LogCallback
from newtboot.config import BootstrapConfig
from newtboot.environment import BuildEnvironment
from newtboot.errors import ConfigureError, LibraryNotFoundError, ToolNotFoundError, VersionMismatchError
from newtboot.flags import CPPFLAGS, LDFLAGS, PropagatedFlags
from newtboot.models import ProbedLibrary, TargetPhase
from newtboot.orchestrator import BootstrapState, Orchestrator, PropagationState
from newtboot.runner import NativeBuildRunner
from newtboot.targets import get_target
from newtboot.tools import ToolHandle

# ─── Fakes ────────────────────────────────────────────────────────────────────


class FakeSystemProbe:
    """Answers the system probe; scoped probes return a library under the prefix."""

    def __init__(self, system_version: str | None = None, system_error: Exception | None = None) -> None:
        self.system_version = system_version
        self.system_error = system_error
        self.calls: list[tuple[str, Path | None]] = []

    def probe(self, name, min_version, search_path=None, want_static=False):
        self.calls.append((name, search_path))
        if search_path is None:
            if self.system_error is not None:
                raise self.system_error
            if self.system_version is None:
                raise LibraryNotFoundError(name)
            return ProbedLibrary(name=name, version=self.system_version, libs=("newt",))
        prefix = search_path.parent.parent
        return ProbedLibrary(
            name=name,
            version=min_version,
            include_paths=(prefix / "include",),
            link_paths=(prefix / "lib",),
            libs=(name.removeprefix("lib"),),
        )


class FakeLocator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    def locate(self) -> ToolHandle:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ToolHandle("make", "GNU Make 4.3")


class FakeRunner:
    """Records targets and flags; fails on a chosen target."""

    def __init__(self, probe: FakeSystemProbe, fail_on: str | None = None) -> None:
        self.probe = probe
        self.fail_on = fail_on
        self.runs: list[tuple[str, PropagatedFlags]] = []

    def run(self, target, env, flags=None):
        self.runs.append((target.name, flags))
        if target.name == self.fail_on:
            raise ConfigureError(target.name, ["./configure"], 1)
        return self.probe.probe(target.pkg_config_name, target.version, search_path=env.pkg_config_dir)


class RecordingCallback:
    def __init__(self) -> None:
        self.calls: list[tuple[str, TargetPhase, str]] = []

    def on_progress(self, target_name, phase, progress, total, detail):
        self.calls.append((target_name, phase, detail))


@pytest.fixture
def config(tmp_path) -> BootstrapConfig:
    return BootstrapConfig(out_dir=tmp_path / "out", project_dir=tmp_path / "project")


def _orchestrator(config, probe, locator=None, runner=None, callback=None):
    locator = locator if locator is not None else FakeLocator()
    runner = runner if runner is not None else FakeRunner(probe)
    return Orchestrator(config, probe=probe, locator=locator, runner_factory=lambda tool: runner, callback=callback)


# ─── Tests ────────────────────────────────────────────────────────────────────


class TestSystemLibrary:
    """Decisions taken from the system probe."""

    def test_usable_system_library_is_used(self, config):
        probe = FakeSystemProbe(system_version="0.52.25")
        locator = FakeLocator()
        runner = FakeRunner(probe)

        result = _orchestrator(config, probe, locator, runner).run()

        assert result.state == BootstrapState.SATISFIED
        assert result.success
        assert result.built_targets == []
        assert result.libraries["newt"].version == "0.52.25"
        assert result.artifacts is not None
        assert result.artifacts.static is False
        assert locator.calls == 0
        assert runner.runs == []
        assert probe.calls == [("libnewt", None)]

    def test_state_history_when_satisfied(self, config):
        orchestrator = _orchestrator(config, FakeSystemProbe(system_version="0.52.20"))
        orchestrator.run()
        assert orchestrator.history == [
            BootstrapState.IDLE,
            BootstrapState.SYSTEM_PROBE_ATTEMPTED,
            BootstrapState.SATISFIED,
        ]

    def test_force_static_ignores_system_library(self, tmp_path):
        config = BootstrapConfig(out_dir=tmp_path / "out", project_dir=tmp_path, feature_static=True)
        probe = FakeSystemProbe(system_version="0.52.25")
        locator = FakeLocator()
        runner = FakeRunner(probe)

        result = _orchestrator(config, probe, locator, runner).run()

        assert result.state == BootstrapState.DONE
        assert locator.calls == 1
        assert [name for name, _ in runner.runs] == ["popt", "slang", "newt"]

    def test_static_override_ignores_system_library(self, tmp_path):
        config = BootstrapConfig(out_dir=tmp_path / "out", project_dir=tmp_path, static_override=True)
        probe = FakeSystemProbe(system_version="0.52.25")

        result = _orchestrator(config, probe).run()

        assert result.state == BootstrapState.DONE

    def test_too_old_system_library_bootstraps(self, config):
        probe = FakeSystemProbe(system_error=VersionMismatchError("libnewt", "0.52.11", "0.52.20"))

        result = _orchestrator(config, probe).run()

        assert result.state == BootstrapState.DONE
        assert isinstance(result.system_probe_error, VersionMismatchError)

    def test_missing_system_library_is_recorded(self, config):
        result = _orchestrator(config, FakeSystemProbe()).run()
        assert isinstance(result.system_probe_error, LibraryNotFoundError)


class TestBootstrap:
    """Building every target in dependency order."""

    def test_build_order_and_propagated_flags(self, config):
        probe = FakeSystemProbe()
        runner = FakeRunner(probe)

        result = _orchestrator(config, probe, runner=runner).run()

        assert result.state == BootstrapState.DONE
        assert [name for name, _ in runner.runs] == ["popt", "slang", "newt"]

        popt_prefix = BuildEnvironment.for_target(config.out_dir, config.project_dir, get_target("popt")).install_prefix
        slang_prefix = BuildEnvironment.for_target(config.out_dir, config.project_dir, get_target("slang")).install_prefix
        flags_by_target = dict(runner.runs)
        assert flags_by_target["popt"].is_empty
        assert flags_by_target["slang"].is_empty
        assert flags_by_target["newt"] == PropagatedFlags(
            cppflags=f"-I{popt_prefix / 'include'} -I{slang_prefix / 'include'} ",
            ldflags=f"-L{popt_prefix / 'lib'} -L{slang_prefix / 'lib'} ",
        )

    def test_history(self, config):
        orchestrator = _orchestrator(config, FakeSystemProbe())
        orchestrator.run()
        assert orchestrator.history == [
            BootstrapState.IDLE,
            BootstrapState.SYSTEM_PROBE_ATTEMPTED,
            BootstrapState.BOOTSTRAP_REQUIRED,
            BootstrapState.DEPENDENCY_BUILDING,
            BootstrapState.DEPENDENCY_BUILDING,
            BootstrapState.DEPENDENCY_BUILDING,
            BootstrapState.DONE,
        ]

    def test_static_artifacts_list_dependents_first(self, config):
        result = _orchestrator(config, FakeSystemProbe()).run()

        assert result.artifacts is not None
        assert result.artifacts.static is True
        assert result.artifacts.libs == ("newt", "slang", "popt")
        assert result.built_targets == ["popt", "slang", "newt"]

    def test_done_callbacks(self, config):
        callback = RecordingCallback()
        _orchestrator(config, FakeSystemProbe(), callback=callback).run()
        done = [name for name, phase, _ in callback.calls if phase == TargetPhase.DONE]
        assert done == ["popt", "slang", "newt"]


class TestFailures:
    """Every failure after the system probe is fatal."""

    def test_missing_build_tool(self, config):
        runner = FakeRunner(FakeSystemProbe())
        result = _orchestrator(config, FakeSystemProbe(), FakeLocator(ToolNotFoundError(("make", "gmake"))), runner).run()

        assert result.state == BootstrapState.FATAL_FAILURE
        assert isinstance(result.error, ToolNotFoundError)
        assert result.failed_target is None
        assert runner.runs == []

    def test_failed_target_stops_bootstrap(self, config):
        probe = FakeSystemProbe()
        runner = FakeRunner(probe, fail_on="slang")
        callback = RecordingCallback()

        result = _orchestrator(config, probe, runner=runner, callback=callback).run()

        assert result.state == BootstrapState.FATAL_FAILURE
        assert not result.success
        assert result.failed_target == "slang"
        assert [name for name, _ in runner.runs] == ["popt", "slang"]
        assert list(result.libraries) == ["popt"]
        assert result.artifacts is None
        assert ("slang", TargetPhase.FAILED) in [(n, p) for n, p, _ in callback.calls]
        assert isinstance(result.error, ConfigureError)

    def test_failure_reported_once_in_log_mode(self, config, monkeypatch):
        stream = StringIO()
        monkeypatch.setattr(output, "_output_stream", stream)
        monkeypatch.setattr(output, "_verbose", False)
        probe = FakeSystemProbe()

        result = _orchestrator(config, probe, runner=FakeRunner(probe, fail_on="popt"), callback=LogCallback()).run()

        assert result.state == BootstrapState.FATAL_FAILURE
        assert stream.getvalue().count(str(result.error)) == 1
        assert f"ERROR: popt: {result.error}" in stream.getvalue()

    def test_configure_failure_with_real_runner(self, config, monkeypatch):
        """A failing configure leaves cwd and CPPFLAGS/LDFLAGS as they were for the next step."""
        monkeypatch.delenv(CPPFLAGS, raising=False)
        monkeypatch.delenv(LDFLAGS, raising=False)
        probe = FakeSystemProbe()
        attempted: list[str] = []

        class CreatingExtractor:
            def extract(self, archive_path, compression, destination_dir, task_name=""):
                attempted.append(task_name)
                (destination_dir / archive_path.name[: -len(compression.suffix)]).mkdir(parents=True, exist_ok=True)

        def failing_step(cmd, target, error_cls, cwd=None, env=None, log_path=None):
            raise error_cls(target, cmd, 1)

        def factory(tool):
            return NativeBuildRunner(tool, probe, extractor=CreatingExtractor())

        orchestrator = Orchestrator(config, probe=probe, locator=FakeLocator(), runner_factory=factory)
        before = os.getcwd()

        with patch("newtboot.runner.run_step", failing_step):
            result = orchestrator.run()

        assert result.state == BootstrapState.FATAL_FAILURE
        assert isinstance(result.error, ConfigureError)
        assert attempted == ["popt"]
        assert os.getcwd() == before
        assert CPPFLAGS not in os.environ


class TestPropagationState:
    def test_flags_for_unbuilt_dependency(self):
        with pytest.raises(KeyError, match="popt"):
            PropagationState().flags_for(["popt"])

    def test_flags_only_from_named_dependencies(self):
        state = PropagationState()
        state.record("a", ProbedLibrary(name="a", version="1", include_paths=(Path("/a"),)))
        state.record("b", ProbedLibrary(name="b", version="1", include_paths=(Path("/b"),)))
        assert state.flags_for(["b"]).cppflags == "-I/b "
        assert state.completed_names == ["a", "b"]

