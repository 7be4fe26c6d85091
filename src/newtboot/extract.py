"""Vendored archive extraction.

Archives are tar streams compressed with gzip or bzip2. The compression is
taken from the target declaration, never sniffed from the file, so a wrong
declaration fails loudly here instead of silently working.

Extraction keeps member paths exactly as stored, so an archive whose single
top-level directory is `{name}-{version}/` produces
`{destination}/{name}-{version}/`.
"""

import logging
import tarfile
import zlib
from pathlib import Path

from .callbacks import BootstrapCallback, NullCallback
from .errors import ExtractionError
from .models import TargetPhase
from .targets import CompressionFormat

logger = logging.getLogger(__name__)


class ArchiveExtractor:
    """Unpacks vendored source archives into the scratch build root."""

    def __init__(self, callback: BootstrapCallback | None = None) -> None:
        self._callback = callback if callback is not None else NullCallback()

    def extract(self, archive_path: Path, compression: CompressionFormat, destination_dir: Path, task_name: str = "") -> None:
        """Extract an archive into destination_dir.

        Files already present from an earlier, interrupted run are
        overwritten in place.

        Args:
            archive_path: Path to the vendored archive
            compression: Declared compression of the archive
            destination_dir: Directory to extract into (created if missing)
            task_name: Target name used for progress reporting

        Raises:
            ExtractionError: If the archive is missing or corrupt, the declared
                compression is wrong, or the destination is unwritable.
        """
        name = task_name or archive_path.name

        if not archive_path.is_file():
            raise ExtractionError(f"Vendored archive not found: {archive_path}", target=task_name or None)

        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExtractionError(f"Cannot create extraction directory {destination_dir}: {e}", target=task_name or None) from e

        logger.debug("Extracting %s (%s) into %s", archive_path, compression.value, destination_dir)
        self._callback.on_progress(name, TargetPhase.EXTRACTING, 0, 0, f"Extracting {archive_path.name}")

        try:
            with tarfile.open(archive_path, compression.tar_mode) as tar:  # type: ignore[call-overload]
                members = tar.getmembers()
                total = len(members)
                for i, member in enumerate(members):
                    tar.extract(member, destination_dir, filter="data")
                    if (i + 1) % max(1, total // 20) == 0 or i == total - 1:
                        self._callback.on_progress(name, TargetPhase.EXTRACTING, i + 1, total, f"Extracting files ({i + 1}/{total})")
        except (tarfile.TarError, EOFError, OSError, zlib.error) as e:
            raise ExtractionError(
                f"Failed to extract {archive_path} as {compression.suffix} into {destination_dir}: {e}",
                target=task_name or None,
            ) from e
