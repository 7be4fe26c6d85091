"""Unit tests for the newtboot command line."""

import json
from io import StringIO
from pathlib import Path
from unittest.mock import patch

import pytest

from newtboot import output
from newtboot.artifacts import BindingArtifacts
from newtboot.cli import main
from newtboot.config import ARTIFACTS_FILENAME, ENV_OUT_DIR
from newtboot.errors import ConfigureError
from newtboot.models import ProbedLibrary
from newtboot.orchestrator import BootstrapResult, BootstrapState


def _satisfied() -> BootstrapResult:
    lib = ProbedLibrary(name="libnewt", version="0.52.25", libs=("newt",))
    return BootstrapResult(
        state=BootstrapState.SATISFIED,
        libraries={"newt": lib},
        artifacts=BindingArtifacts.from_libraries([lib], static=False),
    )


def _failed() -> BootstrapResult:
    error = ConfigureError("popt", ["./configure", "--prefix", "/p"], 1, "checking for gcc... no")
    return BootstrapResult(state=BootstrapState.FATAL_FAILURE, error=error, failed_target="popt")


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestCli:
    def test_no_command_prints_help(self, capsys):
        assert _exit_code([]) == 0
        assert "bootstrap" in capsys.readouterr().out

    def test_version(self, capsys):
        assert _exit_code(["--version"]) == 0
        assert "newtboot" in capsys.readouterr().out

    def test_targets(self, capsys):
        main(["targets"])
        out = capsys.readouterr().out
        assert "popt-1.16.tar.gz" in out
        assert "slang-2.3.2.tar.bz2" in out
        assert "needs popt, slang" in out

    def test_targets_by_name(self, capsys):
        main(["targets", "slang"])
        out = capsys.readouterr().out
        assert "slang-2.3.2.tar.bz2" in out
        assert "popt" not in out

    def test_unknown_target_name(self, monkeypatch, capsys):
        stream = StringIO()
        monkeypatch.setattr(output, "_output_stream", stream)
        assert _exit_code(["targets", "ncurses"]) == 2
        assert "Unexpected package requested to be built: ncurses" in stream.getvalue()
        assert capsys.readouterr().out == ""

    def test_missing_out_dir(self, monkeypatch):
        stream = StringIO()
        monkeypatch.setattr(output, "_output_stream", stream)
        monkeypatch.delenv(ENV_OUT_DIR, raising=False)
        assert _exit_code(["bootstrap", "--no-tui"]) == 1
        assert f"ERROR: {ENV_OUT_DIR}" in stream.getvalue()

    def test_success_writes_artifacts(self, tmp_path):
        with patch("newtboot.cli.Orchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.return_value = _satisfied()
            code = _exit_code(["bootstrap", "--no-tui", "--out-dir", str(tmp_path), "--project-dir", str(tmp_path)])

        assert code == 0
        data = json.loads((tmp_path / ARTIFACTS_FILENAME).read_text())
        assert data["libs"] == ["newt"]
        assert data["static"] is False

    def test_static_flag_reaches_config(self, tmp_path):
        with patch("newtboot.cli.Orchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.return_value = _satisfied()
            _exit_code(["bootstrap", "--no-tui", "--static", "--out-dir", str(tmp_path)])

        config = orchestrator_cls.call_args[0][0]
        assert config.force_static is True
        assert config.out_dir == Path(tmp_path).resolve()

    def test_failure(self, tmp_path, capsys):
        with patch("newtboot.cli.Orchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.return_value = _failed()
            code = _exit_code(["bootstrap", "--no-tui", "--out-dir", str(tmp_path)])

        assert code == 1
        out = capsys.readouterr().out
        assert "configure failed for popt" in out
        assert "checking for gcc... no" in out
        assert not (tmp_path / ARTIFACTS_FILENAME).exists()

    def test_interrupted(self, tmp_path):
        with patch("newtboot.cli.Orchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.side_effect = KeyboardInterrupt
            assert _exit_code(["bootstrap", "--no-tui", "--out-dir", str(tmp_path)]) == 130
