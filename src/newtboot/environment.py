"""Per-target build paths.

Layout derived from a single output root:

    {out_dir}/build/                          scratch root, shared by targets
    {out_dir}/build/{name}-{version}/         extracted source tree
    {out_dir}/install/{name}-{version}/       install prefix
    {out_dir}/install/{name}-{version}/lib/pkgconfig

Vendored archives are read from {project_dir}/vendor/.
"""

from dataclasses import dataclass
from pathlib import Path

from .targets import BuildTarget


@dataclass(frozen=True)
class BuildEnvironment:
    """Filesystem locations used while bootstrapping one target.

    Every per-target path is namespaced by `{name}-{version}`, so environments
    of different targets never overlap except for the shared scratch root.

    Attributes:
        vendor_dir: Directory containing the vendored archives
        archive_path: The target's vendored archive
        build_root: Scratch directory archives are extracted into
        source_dir: The extracted source tree
        install_prefix: Directory passed to ./configure --prefix
        pkg_config_dir: Install-scoped pkg-config metadata directory
    """

    vendor_dir: Path
    archive_path: Path
    build_root: Path
    source_dir: Path
    install_prefix: Path
    pkg_config_dir: Path

    @classmethod
    def for_target(cls, out_dir: Path, project_dir: Path, target: BuildTarget) -> "BuildEnvironment":
        """Derive the environment of a target from the output and project roots."""
        vendor_dir = project_dir / "vendor"
        build_root = out_dir / "build"
        install_prefix = out_dir / "install" / target.versioned_name
        return cls(
            vendor_dir=vendor_dir,
            archive_path=vendor_dir / target.archive_name,
            build_root=build_root,
            source_dir=build_root / target.versioned_name,
            install_prefix=install_prefix,
            pkg_config_dir=install_prefix / "lib" / "pkgconfig",
        )
