"""Data models shared across the bootstrap stages.

Defines the core dataclasses used throughout the bootstrap:
- TargetPhase: Enum tracking which stage a target build is in
- ProbedLibrary: Resolved build metadata of an installed library
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class TargetPhase(Enum):
    """Phase of a single target in the bootstrap."""

    WAITING = "waiting"
    EXTRACTING = "extracting"
    CONFIGURING = "configuring"
    BUILDING = "building"
    PROBING = "probing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ProbedLibrary:
    """Result of locating or building a library.

    Produced by LibraryProbe, consumed by FlagPropagator and ultimately by the
    binding layer linker step.

    Attributes:
        name: Metadata name the library was probed under (e.g. "libnewt")
        version: Resolved version string reported by the metadata
        include_paths: Ordered include directories (from -I flags)
        link_paths: Ordered link directories (from -L flags)
        libs: Libraries to link (from -l flags, without the prefix)
        defines: Preprocessor defines (from -D flags); value is None for bare defines
        extra_args: Any remaining arguments, kept verbatim and in order
    """

    name: str
    version: str
    include_paths: tuple[Path, ...] = ()
    link_paths: tuple[Path, ...] = ()
    libs: tuple[str, ...] = ()
    defines: tuple[tuple[str, str | None], ...] = ()
    extra_args: tuple[str, ...] = field(default=())
