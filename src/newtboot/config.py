"""Bootstrap configuration.

Configuration comes from the environment set up by the enclosing build,
optionally overridden by CLI flags:

    NEWT_FEATURE_STATIC  build-time static-link switch (1/true/yes/on)
    NEWT_STATIC          override: when present at all, force a static bootstrap
    NEWT_OUT_DIR         output root for build and install trees (required)
    NEWT_PROJECT_DIR     project root containing vendor/ (default: cwd)
    NEWT_VERBOSE         verbose output (1/true/yes/on)
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigError

ENV_FEATURE_STATIC = "NEWT_FEATURE_STATIC"
ENV_STATIC_OVERRIDE = "NEWT_STATIC"
ENV_OUT_DIR = "NEWT_OUT_DIR"
ENV_PROJECT_DIR = "NEWT_PROJECT_DIR"
ENV_VERBOSE = "NEWT_VERBOSE"

ARTIFACTS_FILENAME = "newt-artifacts.json"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _is_truthy(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class BootstrapConfig:
    """Parameters of one bootstrap invocation.

    Attributes:
        out_dir: Output root; build/ and install/ are created below it
        project_dir: Project root; vendored archives live in project_dir/vendor
        feature_static: Static linking requested by the build-time switch
        static_override: Static bootstrap forced through the environment
        verbose: Whether to print verbose output
    """

    out_dir: Path
    project_dir: Path
    feature_static: bool = False
    static_override: bool = False
    verbose: bool = False

    @property
    def force_static(self) -> bool:
        """True when the system library must be ignored."""
        return self.feature_static or self.static_override

    @property
    def vendor_dir(self) -> Path:
        return self.project_dir / "vendor"

    @property
    def artifacts_path(self) -> Path:
        return self.out_dir / ARTIFACTS_FILENAME

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BootstrapConfig":
        """Build a configuration from environment variables.

        Raises:
            ConfigError: If the output root is not set.
        """
        environ = environ if environ is not None else os.environ

        out_dir = environ.get(ENV_OUT_DIR)
        if not out_dir:
            raise ConfigError(f"{ENV_OUT_DIR} is not set; pass --out-dir or export {ENV_OUT_DIR}")

        project_dir = environ.get(ENV_PROJECT_DIR) or os.getcwd()

        return cls(
            out_dir=Path(out_dir).resolve(),
            project_dir=Path(project_dir).resolve(),
            feature_static=_is_truthy(environ.get(ENV_FEATURE_STATIC)),
            static_override=ENV_STATIC_OVERRIDE in environ,
            verbose=_is_truthy(environ.get(ENV_VERBOSE)),
        )

    @classmethod
    def create(
        cls,
        out_dir: Optional[Path] = None,
        project_dir: Optional[Path] = None,
        static: bool = False,
        verbose: bool = False,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "BootstrapConfig":
        """Build a configuration from CLI values layered over the environment.

        Explicit arguments win over environment variables; `static` and
        `verbose` can only turn the corresponding setting on.

        Raises:
            ConfigError: If no output root is given by either source.
        """
        environ = dict(environ if environ is not None else os.environ)
        if out_dir is not None:
            environ[ENV_OUT_DIR] = str(out_dir)
        if project_dir is not None:
            environ[ENV_PROJECT_DIR] = str(project_dir)

        config = cls.from_env(environ)
        if static:
            config = replace(config, feature_static=True)
        if verbose:
            config = replace(config, verbose=True)
        return config
