"""
Timestamped console output for the bootstrap.

All user-facing output is prefixed with the elapsed time since the bootstrap
started, in MM:SS.cc format (minutes:seconds.centiseconds), so slow native
build steps are easy to spot in a build log.

Example output:
    00:00.02 newtboot v0.1.0
    00:00.05 System libnewt not usable: library 'libnewt' not found
    00:00.31 [1/3] Building popt-1.16...
    00:09.87       Done (9.56s)

Usage:
    from newtboot.output import log, log_phase, log_detail

    log("Bootstrapping vendored libraries...")
    log_phase(1, 3, "Building popt-1.16...")
    log_detail("./configure --prefix ...")

Debug diagnostics go through the logging module instead.
"""

import sys
import time
from types import TracebackType
from typing import Optional, TextIO

# Global state for the timer
_start_time: Optional[float] = None
_output_stream: TextIO = sys.stdout
_verbose: bool = False


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    If not called explicitly, it is called automatically on first log.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout)
    """
    global _start_time, _output_stream
    _start_time = time.time()
    if output_stream is not None:
        _output_stream = output_stream


def set_output_stream(output_stream: TextIO) -> None:
    """Redirect output without restarting the timer."""
    global _output_stream
    _output_stream = output_stream


def set_verbose(verbose: bool) -> None:
    """
    Set verbose mode for logging.

    Args:
        verbose: If True, verbose_only messages are printed too.
    """
    global _verbose
    _verbose = verbose


def get_elapsed() -> float:
    """Elapsed time in seconds since timer initialization."""
    if _start_time is None:
        init_timer()
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """Format the current elapsed time as MM:SS.cc."""
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str) -> None:
    line = f"{format_timestamp()} {message}\n"
    _output_stream.write(line)
    _output_stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """
    Log a message with timestamp.

    Args:
        message: Message to log
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """
    Log a bootstrap phase message.

    Format: [N/M] message
    """
    if verbose_only and not _verbose:
        return
    _print(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """
    Log a detail message (indented).

    Args:
        message: Detail message
        indent: Number of spaces to indent (default 6)
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_header(title: str, version: str) -> None:
    """Log the program header."""
    _print(f"{title} v{version}")


def log_error(message: str) -> None:
    """Log an error message."""
    _print(f"ERROR: {message}")


def log_warning(message: str) -> None:
    """Log a warning message."""
    _print(f"WARNING: {message}")


def log_success(message: str) -> None:
    """Log a success message."""
    _print(message)


class TimedLogger:
    """
    Context manager for logging an operation with its elapsed time.

    Usage:
        with TimedLogger("Building popt-1.16", phase=(1, 3)) as timed:
            timed.detail("./configure --prefix ...")
        # Logs "Done (N.NNs)" on success, nothing on failure
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        """
        Initialize timed logger.

        Args:
            operation: Description of the operation
            phase: Optional (current, total) phase numbers
            verbose_only: If True, only print if verbose mode is enabled
        """
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            log_phase(self.phase[0], self.phase[1], f"{self.operation}...", self.verbose_only)
        else:
            log(f"{self.operation}...", self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb  # Unused
        elapsed = time.time() - self.start_time
        if exc_type is None:
            log_detail(f"Done ({elapsed:.2f}s)", verbose_only=self.verbose_only)
        return None

    def detail(self, message: str) -> None:
        """Log a detail message within this operation."""
        log_detail(message, verbose_only=self.verbose_only)
