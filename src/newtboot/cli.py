"""
Command-line interface for newtboot.

This module provides the `newtboot` CLI tool, invoked by the enclosing build
to make sure a usable newt library is available before the bindings compile.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from newtboot import __version__
from newtboot.callbacks import BootstrapCallback, LogCallback
from newtboot.config import BootstrapConfig
from newtboot.errors import CommandError, ConfigError, UnknownTargetError
from newtboot.orchestrator import BootstrapState, Orchestrator
from newtboot.output import init_timer, log, log_error, log_header, log_success, set_output_stream, set_verbose
from newtboot.progress_display import BootstrapProgressDisplay
from newtboot.targets import TARGETS, get_target


@dataclass
class BootstrapArgs:
    """Arguments for the bootstrap command."""

    out_dir: Optional[Path] = None
    project_dir: Optional[Path] = None
    static: bool = False
    verbose: bool = False
    no_tui: bool = False


def _use_tui(args: BootstrapArgs) -> bool:
    return not args.no_tui and sys.stdout.isatty()


def bootstrap_command(args: BootstrapArgs) -> None:
    """Make libnewt available, building it from vendored sources if needed.

    Examples:
        newtboot bootstrap --out-dir build/      # Use system newt if possible
        newtboot bootstrap --static              # Always build from vendor/
        newtboot bootstrap --no-tui -v           # Plain log output, verbose
    """
    init_timer()
    set_verbose(args.verbose)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    log_header("newtboot", __version__)

    try:
        config = BootstrapConfig.create(
            out_dir=args.out_dir,
            project_dir=args.project_dir,
            static=args.static,
            verbose=args.verbose,
        )
    except ConfigError as e:
        log_error(str(e))
        sys.exit(1)

    set_verbose(config.verbose)
    log(f"Output directory: {config.out_dir}", verbose_only=True)
    log(f"Vendor directory: {config.vendor_dir}", verbose_only=True)

    try:
        if _use_tui(args):
            display = BootstrapProgressDisplay()
            for target in TARGETS.values():
                display.register_target(target.name, target.version)
            stdout = sys.stdout
            with display:
                # Live swaps sys.stdout for a proxy that prints above the table
                set_output_stream(sys.stdout)
                try:
                    result = Orchestrator(config, callback=display, capture_logs=True).run()
                finally:
                    set_output_stream(stdout)
        else:
            callback: BootstrapCallback = LogCallback()
            result = Orchestrator(config, callback=callback).run()
    except KeyboardInterrupt:
        print()
        log_error("Bootstrap interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    if not result.success:
        print()
        print("\033[1;31m✗ Bootstrap failed!\033[0m")
        print()
        print(str(result.error))
        if isinstance(result.error, CommandError) and result.error.output:
            print()
            print(result.error.output)
        sys.exit(1)

    assert result.artifacts is not None
    result.artifacts.write(config.artifacts_path)
    log(f"Wrote {config.artifacts_path}", verbose_only=True)

    if result.state == BootstrapState.SATISFIED:
        log_success(f"Using system newt ({result.total_elapsed:.2f}s)")
    else:
        log_success(f"Built {', '.join(result.built_targets)} ({result.total_elapsed:.2f}s)")
    sys.exit(0)


def targets_command(names: Sequence[str] = ()) -> None:
    """List vendored targets, all of them in build order unless names are given.

    Examples:
        newtboot targets              # Every vendored target
        newtboot targets newt slang   # Only the named targets
    """
    try:
        selected = [get_target(name) for name in names] if names else list(TARGETS.values())
    except UnknownTargetError as e:
        log_error(str(e))
        sys.exit(2)

    for target in selected:
        deps = f" (needs {', '.join(target.dependencies)})" if target.dependencies else ""
        print(f"{target.name:<8} {target.version:<8} {target.archive_name}{deps}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """newtboot - bootstrap the newt terminal UI library from vendored sources."""
    parser = argparse.ArgumentParser(
        prog="newtboot",
        description="newtboot - build popt, slang and newt when the system newt is unusable",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"newtboot {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Bootstrap command
    bootstrap_parser = subparsers.add_parser(
        "bootstrap",
        help="Probe for libnewt and build it from vendored sources if needed",
    )
    bootstrap_parser.add_argument(
        "-o",
        "--out-dir",
        type=Path,
        default=None,
        help="Output root for build and install trees (default: $NEWT_OUT_DIR)",
    )
    bootstrap_parser.add_argument(
        "-p",
        "--project-dir",
        type=Path,
        default=None,
        help="Project directory containing vendor/ (default: $NEWT_PROJECT_DIR or current directory)",
    )
    bootstrap_parser.add_argument(
        "-s",
        "--static",
        action="store_true",
        help="Ignore the system newt and build everything for static linking",
    )
    bootstrap_parser.add_argument(
        "--no-tui",
        action="store_true",
        help="Disable the live progress display",
    )
    bootstrap_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    # Targets command
    targets_parser = subparsers.add_parser(
        "targets",
        help="List vendored targets",
    )
    targets_parser.add_argument(
        "names",
        nargs="*",
        help="Target names to show (default: all)",
    )

    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    if parsed_args.command == "bootstrap":
        args = BootstrapArgs(
            out_dir=parsed_args.out_dir,
            project_dir=parsed_args.project_dir,
            static=parsed_args.static,
            verbose=parsed_args.verbose,
            no_tui=parsed_args.no_tui,
        )
        bootstrap_command(args)
    elif parsed_args.command == "targets":
        targets_command(parsed_args.names)


if __name__ == "__main__":
    main()
