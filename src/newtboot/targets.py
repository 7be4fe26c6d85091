"""Native library targets and their build recipes.

This module defines the closed set of libraries the bootstrap knows how to
build from vendored sources.

Design:
    Each target declares everything that differs between libraries: the
    archive compression, extra configure flags, make variable overrides and
    the install target name. The build runner knows nothing about popt,
    slang or newt specifically - it only executes a recipe.

    Dependency graph:
      popt  (no deps) ──┐
                        ├──► newt
      slang (no deps) ──┘
"""

from dataclasses import dataclass
from enum import Enum

from .errors import UnknownTargetError

NEWT_VERSION = "0.52.20"
POPT_VERSION = "1.16"
SLANG_VERSION = "2.3.2"


class CompressionFormat(Enum):
    """Compression of a vendored tar archive."""

    GZIP = "gz"
    BZIP2 = "bz2"

    @property
    def suffix(self) -> str:
        """Archive file suffix (e.g. ".tar.gz")."""
        return f".tar.{self.value}"

    @property
    def tar_mode(self) -> str:
        """Mode string for tarfile.open()."""
        return f"r:{self.value}"


@dataclass(frozen=True)
class BuildRecipe:
    """How to configure, build and install one source tree.

    Attributes:
        configure_args: Flags passed to ./configure after --prefix
        make_args: Variable overrides passed to make before the target
        install_target: Make target that installs the artifacts
    """

    configure_args: tuple[str, ...] = ()
    make_args: tuple[str, ...] = ()
    install_target: str = "install"


@dataclass(frozen=True)
class BuildTarget:
    """One native library that can be bootstrapped.

    Attributes:
        name: Target name, also the archive and source directory stem
        version: Vendored version, also the minimum accepted version
        pkg_config_name: Name of the library's pkg-config metadata
        compression: Compression of the vendored archive
        recipe: Configure/build/install recipe
        dependencies: Names of targets that must be built first
    """

    name: str
    version: str
    pkg_config_name: str
    compression: CompressionFormat
    recipe: BuildRecipe
    dependencies: tuple[str, ...] = ()

    @property
    def versioned_name(self) -> str:
        """`{name}-{version}`, the namespace for every per-target path."""
        return f"{self.name}-{self.version}"

    @property
    def archive_name(self) -> str:
        """File name of the vendored archive."""
        return f"{self.versioned_name}{self.compression.suffix}"

    def __str__(self) -> str:
        return self.versioned_name


POPT = BuildTarget(
    name="popt",
    version=POPT_VERSION,
    pkg_config_name="popt",
    compression=CompressionFormat.GZIP,
    recipe=BuildRecipe(configure_args=("--disable-nls", "--disable-rpath")),
)

# The default install target of the slang tree does not produce the static
# archive, and its objects must be position independent to link into newt.
SLANG = BuildTarget(
    name="slang",
    version=SLANG_VERSION,
    pkg_config_name="slang",
    compression=CompressionFormat.BZIP2,
    recipe=BuildRecipe(make_args=("CFLAGS=-g -O2 -fPIC",), install_target="install-static"),
)

NEWT = BuildTarget(
    name="newt",
    version=NEWT_VERSION,
    pkg_config_name="libnewt",
    compression=CompressionFormat.GZIP,
    recipe=BuildRecipe(configure_args=("--disable-nls",)),
    dependencies=("popt", "slang"),
)

# Insertion order is the build order for independent targets
TARGETS: dict[str, BuildTarget] = {target.name: target for target in (POPT, SLANG, NEWT)}

# The most-dependent target; its presence on the host decides whether to bootstrap
TOP_LEVEL_TARGET = NEWT


def get_target(name: str) -> BuildTarget:
    """Look up a target by name.

    Raises:
        UnknownTargetError: If the name is not a known target.
    """
    try:
        return TARGETS[name]
    except KeyError:
        raise UnknownTargetError(f"Unexpected package requested to be built: {name}", target=name) from None
