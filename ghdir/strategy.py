"""Choose how to retrieve a target based on the archive probe."""

from enum import Enum
from typing import Optional

from .http.protocols import ArchiveProbe
from .locator import FetchTarget

MIB = 1024 * 1024
GIB = 1024 * MIB

# Archives above this size are fetched with git sparse-checkout when a subfolder is requested
SPARSE_THRESHOLD = 500 * MIB

# Archives above this size need explicit confirmation before anything is downloaded
CONFIRM_THRESHOLD = 2 * GIB


class Strategy(str, Enum):
    """Retrieval strategies."""

    UNCHANGED = "unchanged"
    FULL_DOWNLOAD = "full_download"
    SPARSE_CHECKOUT = "sparse_checkout"


def select_strategy(
    target: FetchTarget,
    probe: ArchiveProbe,
    cached_token: Optional[str] = None,
    sparse_threshold: int = SPARSE_THRESHOLD,
) -> Strategy:
    """
    Select a retrieval strategy.

    Args:
        target: What is being fetched
        probe: Result of the conditional HEAD request
        cached_token: Revision token stored for this target, if any
        sparse_threshold: Archive size above which sparse checkout is used

    Returns:
        Selected Strategy
    """
    if cached_token and probe.not_modified:
        return Strategy.UNCHANGED

    if target.subfolder and probe.content_length is not None and probe.content_length > sparse_threshold:
        return Strategy.SPARSE_CHECKOUT

    return Strategy.FULL_DOWNLOAD


def needs_confirmation(probe: ArchiveProbe, confirm_threshold: int = CONFIRM_THRESHOLD) -> bool:
    """Whether the archive is large enough to require interactive confirmation."""
    return probe.content_length is not None and probe.content_length > confirm_threshold
