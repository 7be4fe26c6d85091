"""Build artifacts handed to the binding layer.

The binding layer needs exactly one thing from the bootstrap: the include
directories, link directories, libraries and defines needed to compile and
link against newt. When newt was bootstrapped these cover every built
library, ordered for a static link (dependents before their dependencies).
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence, TypeVar

from .models import ProbedLibrary

T = TypeVar("T")


def _unique(items: Iterable[T]) -> tuple[T, ...]:
    seen: set[T] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return tuple(result)


@dataclass(frozen=True)
class BindingArtifacts:
    """Compile and link inputs for the binding layer.

    Attributes:
        include_paths: Ordered include directories
        link_paths: Ordered link search directories
        libs: Libraries in link order
        defines: Preprocessor defines required by the headers
        extra_args: Additional flags reported by the metadata
        static: Whether the artifacts are for static linking
    """

    include_paths: tuple[Path, ...] = ()
    link_paths: tuple[Path, ...] = ()
    libs: tuple[str, ...] = ()
    defines: tuple[tuple[str, str | None], ...] = ()
    extra_args: tuple[str, ...] = ()
    static: bool = False

    @classmethod
    def from_libraries(cls, libraries: Sequence[ProbedLibrary], static: bool) -> "BindingArtifacts":
        """Merge probed libraries, given dependents first."""
        return cls(
            include_paths=_unique(p for lib in libraries for p in lib.include_paths),
            link_paths=_unique(p for lib in libraries for p in lib.link_paths),
            libs=_unique(name for lib in libraries for name in lib.libs),
            defines=_unique(d for lib in libraries for d in lib.defines),
            extra_args=_unique(arg for lib in libraries for arg in lib.extra_args),
            static=static,
        )

    def compile_args(self) -> list[str]:
        """Compiler arguments: include directories, then defines."""
        args = [f"-I{path}" for path in self.include_paths]
        for key, value in self.defines:
            args.append(f"-D{key}" if value is None else f"-D{key}={value}")
        return args

    def has_static_archive(self, name: str) -> bool:
        """True when lib{name}.a exists in one of our link directories."""
        return any((path / f"lib{name}.a").is_file() for path in self.link_paths)

    def link_args(self) -> list[str]:
        """Linker arguments: search directories, then libraries, then extras.

        When static, only libraries with an archive in our own link
        directories go in the -Bstatic group. Private system libraries such as
        m or dl stay dynamic and follow the group.
        """
        args = [f"-L{path}" for path in self.link_paths]
        if not self.static:
            args.extend(f"-l{name}" for name in self.libs)
            args.extend(self.extra_args)
            return args

        static_libs = [name for name in self.libs if self.has_static_archive(name)]
        if static_libs:
            args.append("-Wl,-Bstatic")
            args.extend(f"-l{name}" for name in static_libs)
            args.append("-Wl,-Bdynamic")
        args.extend(f"-l{name}" for name in self.libs if name not in static_libs)
        args.extend(self.extra_args)
        return args

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary, including the rendered compiler and linker arguments."""
        return {
            "include_paths": [str(p) for p in self.include_paths],
            "link_paths": [str(p) for p in self.link_paths],
            "libs": list(self.libs),
            "defines": [[key, value] for key, value in self.defines],
            "extra_args": list(self.extra_args),
            "static": self.static,
            "compile_args": self.compile_args(),
            "link_args": self.link_args(),
        }

    def write(self, path: Path) -> None:
        """Write the artifacts as JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
