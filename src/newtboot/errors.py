"""Exception hierarchy for the bootstrap.

Every failure in the bootstrap is terminal. The orchestrator catches
BootstrapError and turns it into the FATAL_FAILURE state; nothing here is
retried.

Command failures carry the target and the command line that failed, since
diagnosing native toolchain failures requires both.
"""

import shlex
from typing import Optional, Sequence


class BootstrapError(Exception):
    """Base class for all bootstrap failures."""

    def __init__(self, message: str, target: Optional[str] = None):
        super().__init__(message)
        self.target = target


class ConfigError(BootstrapError):
    """Raised when the bootstrap configuration is incomplete or invalid."""

    pass


class UnknownTargetError(BootstrapError):
    """Raised when a target name is not in the registry."""

    pass


class ToolNotFoundError(BootstrapError):
    """Raised when no GNU Make compatible build tool exists on the host."""

    def __init__(self, candidates: Sequence[str]):
        self.candidates = tuple(candidates)
        super().__init__(f"GNU Make is required for building this package (tried: {', '.join(self.candidates)})")


class ExtractionError(BootstrapError):
    """Raised when a vendored archive cannot be unpacked."""

    pass


class CommandError(BootstrapError):
    """An external command exited non-zero.

    Attributes:
        target: Name of the target being built
        command: The command line that failed
        returncode: Exit status of the command
        output: Captured output, if any
    """

    step = "command"

    def __init__(self, target: str, command: Sequence[str], returncode: int, output: str = ""):
        self.command = tuple(command)
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"{self.step} failed for {target}: `{format_command(self.command)}` exited with status {returncode}",
            target=target,
        )


class ConfigureError(CommandError):
    """The source tree's configure script failed."""

    step = "configure"


class BuildError(CommandError):
    """The build tool failed while building or installing."""

    step = "build"


class InstallError(BootstrapError):
    """The build tool succeeded but the install prefix is unusable."""

    pass


class ProbeError(BootstrapError):
    """Base class for metadata probe failures."""

    pass


class LibraryNotFoundError(ProbeError):
    """No metadata for the library was found in the search path."""

    def __init__(self, name: str, search_path: Optional[str] = None, detail: str = ""):
        self.name = name
        self.search_path = search_path
        where = f" in {search_path}" if search_path else ""
        suffix = f": {detail}" if detail else ""
        super().__init__(f"library '{name}' not found{where}{suffix}", target=name)


class VersionMismatchError(ProbeError):
    """The library was found but its version is below the minimum."""

    def __init__(self, name: str, found: str, required: str):
        self.name = name
        self.found = found
        self.required = required
        super().__init__(f"library '{name}' version {found} is older than required {required}", target=name)


def format_command(command: Sequence[str]) -> str:
    """Render a command line the way a user would type it."""
    return " ".join(shlex.quote(str(part)) for part in command)
