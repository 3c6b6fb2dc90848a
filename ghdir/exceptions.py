"""Error types raised by the fetch engine.

Every error is terminal for a run. The CLI prints ``str(error)`` and exits
with a non-zero status.
"""

from pathlib import Path
from typing import Optional


class GhdirError(Exception):
    """Base class for all ghdir failures."""

    def __init__(self, message: str, leftover: Optional[Path] = None):
        """
        Args:
            message: User-facing description of the failure
            leftover: Staging directory that could not be removed, if any
        """
        super().__init__(message)
        self.message = message
        self.leftover = leftover

    def __str__(self) -> str:
        if self.leftover is not None:
            return f"{self.message} (leftover files in {self.leftover})"
        return self.message


class InvalidSourceURL(GhdirError):
    """The URL does not name at least an owner and a repository."""


class RemoteUnavailable(GhdirError):
    """The archive endpoint could not be reached or answered with an error."""


class ArchiveCorrupt(GhdirError):
    """The downloaded stream is not a readable gzip-compressed tarball."""


class ExtractionIOError(GhdirError):
    """Writing an extracted entry to disk failed."""


class SparseCheckoutFailed(GhdirError):
    """One of the git sparse-checkout steps failed."""


class MaterializationFailed(GhdirError):
    """Swapping the staged directory into place failed; previous state restored."""


class RollbackFailed(MaterializationFailed):
    """Restoring the previous directory failed too. Needs manual intervention."""

    def __init__(self, message: str, backup: Path, leftover: Optional[Path] = None):
        super().__init__(message, leftover=leftover)
        self.backup = backup

    def __str__(self) -> str:
        return f"{super().__str__()}; previous contents remain in {self.backup}"


class FolderNotFound(GhdirError):
    """The requested subfolder does not exist in the archive."""
