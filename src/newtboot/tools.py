"""Build tool discovery.

The vendored source trees need GNU Make. On most Linux hosts it is installed
as `make`; on BSDs `make` is a different dialect and GNU Make is `gmake`.
"""

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from .errors import ToolNotFoundError
from .subprocess_utils import capture_output

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATES = ("make", "gmake")

# Must match at the very start of the version output
GNU_MAKE_SIGNATURE = re.compile(r"\AGNU Make")


@dataclass(frozen=True)
class ToolHandle:
    """A verified GNU Make executable.

    Attributes:
        name: Executable name or path, as passed to subprocess
        version_line: First line of its --version output
    """

    name: str
    version_line: str = ""

    def command(self, *args: str) -> list[str]:
        """Build a command line invoking this tool."""
        return [self.name, *args]


class ToolLocator:
    """Finds a GNU Make executable among a short list of candidate names."""

    def __init__(self, candidates: Sequence[str] = DEFAULT_CANDIDATES):
        """Initialize the locator.

        Args:
            candidates: Executable names to try, in order
        """
        self.candidates = tuple(candidates)

    def check(self, candidate: str) -> str | None:
        """Ask a candidate for its version and verify the dialect.

        Reads the makefile from stdin (`-f -`) with stdin at EOF, so no
        makefile in the current directory is ever evaluated.

        Returns:
            The first line of the version output if the candidate is GNU Make,
            otherwise None.
        """
        try:
            result = capture_output([candidate, "-f", "-", "--version"])
        except OSError as e:
            logger.debug("Build tool candidate %s not runnable: %s", candidate, e)
            return None

        output = result.stdout or ""
        if not GNU_MAKE_SIGNATURE.match(output):
            logger.debug("Build tool candidate %s is not GNU Make", candidate)
            return None
        return output.splitlines()[0]

    def locate(self) -> ToolHandle:
        """Return the first candidate that is GNU Make.

        Raises:
            ToolNotFoundError: If no candidate is GNU Make.
        """
        for candidate in self.candidates:
            version_line = self.check(candidate)
            if version_line is not None:
                logger.debug("Using build tool %s (%s)", candidate, version_line)
                return ToolHandle(name=candidate, version_line=version_line)
        raise ToolNotFoundError(self.candidates)
