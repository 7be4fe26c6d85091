"""Compiler/linker flag propagation between bootstrapped libraries.

A dependent library's configure script finds its already-built dependencies
through CPPFLAGS (include directories) and LDFLAGS (link directories). The
in-process side passes PropagatedFlags values around explicitly; the process
environment is only touched right around the external build steps.

Discipline:
    apply()/export() set a variable only when its value is non-empty and
    otherwise leave it absent.
    clear() always removes both variables and never restores what was there
    before, so any caller-provided CPPFLAGS/LDFLAGS is gone after a build.
"""

import os
from dataclasses import dataclass
from typing import MutableMapping, Sequence

from .models import ProbedLibrary

CPPFLAGS = "CPPFLAGS"
LDFLAGS = "LDFLAGS"

INCLUDE_PATH_MARKER = "-I"
LINK_PATH_MARKER = "-L"


@dataclass(frozen=True)
class PropagatedFlags:
    """Environment flag values derived from already-built libraries.

    Attributes:
        cppflags: Value for CPPFLAGS ("" when there are no include paths)
        ldflags: Value for LDFLAGS ("" when there are no link paths)
    """

    cppflags: str = ""
    ldflags: str = ""

    @classmethod
    def from_libraries(cls, libraries: Sequence[ProbedLibrary]) -> "PropagatedFlags":
        """Concatenate include and link directories of libraries, in order."""
        include_paths = ""
        link_paths = ""
        for library in libraries:
            for path in library.include_paths:
                include_paths += f"{INCLUDE_PATH_MARKER}{path} "
            for path in library.link_paths:
                link_paths += f"{LINK_PATH_MARKER}{path} "
        return cls(cppflags=include_paths, ldflags=link_paths)

    @property
    def is_empty(self) -> bool:
        return not self.cppflags and not self.ldflags


class FlagPropagator:
    """Exports PropagatedFlags into an environment mapping and clears them."""

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        """Initialize the propagator.

        Args:
            environ: Mapping to mutate; defaults to os.environ so that child
                processes inherit the flags
        """
        self._environ = environ if environ is not None else os.environ

    def export(self, libraries: Sequence[ProbedLibrary]) -> PropagatedFlags:
        """Export the include/link directories of libraries.

        Returns:
            The flags that were applied.
        """
        flags = PropagatedFlags.from_libraries(libraries)
        self.apply(flags)
        return flags

    def apply(self, flags: PropagatedFlags) -> None:
        """Set CPPFLAGS/LDFLAGS for each non-empty value.

        An empty value leaves its variable absent, removing anything a caller
        had put there.
        """
        for key, value in ((CPPFLAGS, flags.cppflags), (LDFLAGS, flags.ldflags)):
            if value:
                self._environ[key] = value
            else:
                self._environ.pop(key, None)

    def clear(self) -> None:
        """Remove CPPFLAGS and LDFLAGS. Safe to call at any time."""
        self._environ.pop(CPPFLAGS, None)
        self._environ.pop(LDFLAGS, None)
