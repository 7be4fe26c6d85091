"""pkg-config based library probing.

Queries installed build metadata for a library's version and usage flags.

Scoping:
    When a search path is given (an install prefix's lib/pkgconfig), every
    pkg-config child runs with PKG_CONFIG_LIBDIR set to that directory and
    PKG_CONFIG_PATH removed, so metadata of the same name installed
    elsewhere on the host is never consulted. The scoping lives in the
    child's environment only; our own process environment is left alone.

Probe sequence:
    1. --exists              -> LibraryNotFoundError
    2. --modversion          (version reported back)
    3. --atleast-version=MIN -> VersionMismatchError
    4. --libs --cflags [--static]
"""

import logging
import os
import shlex
from pathlib import Path
from typing import Optional

from .errors import LibraryNotFoundError, VersionMismatchError
from .models import ProbedLibrary
from .subprocess_utils import capture_output

logger = logging.getLogger(__name__)

PKG_CONFIG_LIBDIR = "PKG_CONFIG_LIBDIR"
PKG_CONFIG_PATH = "PKG_CONFIG_PATH"


def scoped_environment(search_path: Optional[Path]) -> dict[str, str]:
    """Return a copy of os.environ with pkg-config scoped to search_path.

    With no search_path the copy is returned unchanged and pkg-config uses
    its system default search path.
    """
    env = os.environ.copy()
    if search_path is None:
        return env
    env[PKG_CONFIG_LIBDIR] = str(search_path)
    env.pop(PKG_CONFIG_PATH, None)
    return env


def parse_flags(name: str, version: str, output: str) -> ProbedLibrary:
    """Classify pkg-config flag output into a ProbedLibrary.

    Args:
        name: Library metadata name
        version: Version reported by --modversion
        output: Combined --cflags/--libs output

    Returns:
        ProbedLibrary with paths, libraries and defines in output order.
    """
    include_paths: list[Path] = []
    link_paths: list[Path] = []
    libs: list[str] = []
    defines: list[tuple[str, Optional[str]]] = []
    extra_args: list[str] = []

    for token in shlex.split(output):
        if token.startswith("-I") and len(token) > 2:
            include_paths.append(Path(token[2:]))
        elif token.startswith("-L") and len(token) > 2:
            link_paths.append(Path(token[2:]))
        elif token.startswith("-l") and len(token) > 2:
            libs.append(token[2:])
        elif token.startswith("-D") and len(token) > 2:
            key, sep, value = token[2:].partition("=")
            defines.append((key, value if sep else None))
        else:
            extra_args.append(token)

    return ProbedLibrary(
        name=name,
        version=version,
        include_paths=tuple(include_paths),
        link_paths=tuple(link_paths),
        libs=tuple(libs),
        defines=tuple(defines),
        extra_args=tuple(extra_args),
    )


class LibraryProbe:
    """Runs pkg-config to locate a library and resolve its usage flags."""

    def __init__(self, executable: str = "pkg-config") -> None:
        """Initialize the probe.

        Args:
            executable: pkg-config executable name or path
        """
        self.executable = executable

    def _run(self, args: list[str], env: dict[str, str]) -> tuple[int, str, str]:
        cmd = [self.executable, *args]
        result = capture_output(cmd, env=env)
        return result.returncode, (result.stdout or "").strip(), (result.stderr or "").strip()

    def probe(
        self,
        name: str,
        min_version: str,
        search_path: Optional[Path] = None,
        want_static: bool = False,
    ) -> ProbedLibrary:
        """Locate a library of at least min_version.

        Args:
            name: pkg-config metadata name (e.g. "libnewt")
            min_version: Minimum accepted version
            search_path: Restrict the search to this metadata directory
            want_static: Resolve flags for static linking

        Returns:
            The probed library.

        Raises:
            LibraryNotFoundError: If no metadata for name is found or
                pkg-config is not installed.
            VersionMismatchError: If the found version is below min_version.
        """
        where = str(search_path) if search_path is not None else None
        env = scoped_environment(search_path)

        try:
            code, _, stderr = self._run(["--exists", "--print-errors", name], env)
            if code != 0:
                raise LibraryNotFoundError(name, where, stderr)

            code, version, stderr = self._run(["--modversion", name], env)
            if code != 0:
                raise LibraryNotFoundError(name, where, stderr)

            code, _, _ = self._run([f"--atleast-version={min_version}", name], env)
            if code != 0:
                raise VersionMismatchError(name, version, min_version)

            flag_args = ["--libs", "--cflags"]
            if want_static:
                flag_args.append("--static")
            code, output, stderr = self._run([*flag_args, name], env)
            if code != 0:
                raise LibraryNotFoundError(name, where, stderr)
        except OSError as e:
            raise LibraryNotFoundError(name, where, f"cannot run {self.executable}: {e}") from e

        library = parse_flags(name, version, output)
        logger.debug("Probed %s %s: %s", name, version, output)
        return library
