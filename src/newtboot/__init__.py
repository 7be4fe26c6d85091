"""Bootstrap of the newt terminal UI library from vendored sources.

When the host has no usable libnewt (or a static build is requested), popt,
slang and newt are built from archives under vendor/ and installed into a
private prefix, and the compile/link inputs for the bindings are reported.

Public API:
    Orchestrator: Probes the system library and builds targets in dependency order.
    BootstrapConfig: Parameters of one bootstrap run, usually read from the environment.
    BootstrapResult: Terminal state and probed libraries of a run.
    BindingArtifacts: Include/link inputs handed to the binding layer.
"""

__version__ = "0.1.0"

from .artifacts import BindingArtifacts
from .config import BootstrapConfig
from .errors import BootstrapError
from .models import ProbedLibrary, TargetPhase
from .orchestrator import BootstrapResult, BootstrapState, Orchestrator
from .targets import TARGETS, BuildTarget

__all__ = [
    "__version__",
    "BindingArtifacts",
    "BootstrapConfig",
    "BootstrapError",
    "BootstrapResult",
    "BootstrapState",
    "BuildTarget",
    "Orchestrator",
    "ProbedLibrary",
    "TARGETS",
    "TargetPhase",
]
