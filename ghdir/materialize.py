"""Staging directories and atomic replacement of the target directory."""

import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from types import TracebackType
from typing import Callable, Optional

from .exceptions import ExtractionIOError, GhdirError, MaterializationFailed, RollbackFailed

logger = logging.getLogger(__name__)

STAGING_PREFIX = "ghdir_"


def _remove_tree(path: Path) -> bool:
    """Remove a directory tree, returning False if anything is left behind."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False
    return True


class StagingArea:
    """
    Ephemeral directory owning extracted content until it is swapped into place.

    Created next to the final destination so the swap is a same-filesystem
    rename. Removed on exit whether or not the run succeeded.

    Example:
        with StagingArea(output_dir) as staging:
            extract_tarball(stream, staging.path, ...)
            atomic_replace(staging.path, output_dir / "lib")
    """

    def __init__(self, parent: Path):
        """
        Args:
            parent: Directory to create the staging directory in
        """
        self.parent = Path(parent)
        self.path: Optional[Path] = None
        self.leftover: Optional[Path] = None

    def __enter__(self) -> "StagingArea":
        try:
            self.parent.mkdir(parents=True, exist_ok=True)
            self.path = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=self.parent))
        except OSError as e:
            raise ExtractionIOError(f"Cannot create staging directory in {self.parent}: {e}") from e
        logger.debug(f"Created staging area {self.path}")
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.cleanup()
        if self.leftover is not None and isinstance(exc_val, GhdirError) and exc_val.leftover is None:
            exc_val.leftover = self.leftover

    def cleanup(self) -> None:
        """Remove the staging directory; records ``leftover`` if that fails."""
        if self.path is None:
            return
        if not _remove_tree(self.path):
            self.leftover = self.path
        self.path = None


def backup_name(target: Path, clock: Callable[[], float] = time.time) -> Path:
    """Pick an unused ``<target>.old.<unix-time>`` name next to ``target``."""
    stamp = int(clock())
    candidate = target.with_name(f"{target.name}.old.{stamp}")
    counter = 1
    while os.path.lexists(candidate):
        candidate = target.with_name(f"{target.name}.old.{stamp}.{counter}")
        counter += 1
    return candidate


def atomic_replace(source: Path, target: Path, clock: Callable[[], float] = time.time) -> Path:
    """
    Move ``source`` into ``target``, replacing any existing directory.

    An existing target is renamed aside first and only deleted once the new
    content is in place. If the swap fails the previous directory is renamed
    back, so the target is either fully old or fully new.

    Args:
        source: Fully populated directory to install
        target: Final directory path
        clock: Time source for the backup name

    Returns:
        The target path

    Raises:
        MaterializationFailed: Swap failed; filesystem restored to its previous state
        RollbackFailed: Swap and restore both failed; previous content left in the backup
    """
    source = Path(source)
    target = Path(target)
    backup: Optional[Path] = None

    if os.path.lexists(target):
        if not target.is_dir() or target.is_symlink():
            _remove_tree(source)
            raise MaterializationFailed(f"Cannot replace {target}: it exists and is not a directory")
        backup = backup_name(target, clock)
        try:
            os.rename(target, backup)
        except OSError as e:
            _remove_tree(source)
            raise MaterializationFailed(f"Cannot move existing {target} aside: {e}") from e
        logger.debug(f"Moved existing {target} to {backup}")

    try:
        os.rename(source, target)
    except OSError as e:
        if backup is not None:
            try:
                os.rename(backup, target)
            except OSError as restore_error:
                raise RollbackFailed(
                    f"Cannot install {target} ({e}) and restoring the previous version failed ({restore_error})",
                    backup=backup,
                ) from e
            logger.debug(f"Restored {target} from {backup}")
        _remove_tree(source)
        raise MaterializationFailed(f"Cannot install {target}: {e}") from e

    if backup is not None:
        _remove_tree(backup)

    logger.debug(f"Installed {target}")
    return target
