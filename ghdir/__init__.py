"""
ghdir - Download a single folder from a GitHub repository.

Usage:
    from ghdir import Fetcher, GhdirConfig

    with Fetcher(GhdirConfig(output_dir=Path("./vendor"))) as fetcher:
        result = fetcher.run("https://github.com/owner/repo/tree/main/src/lib")
"""

__version__ = "1.0.0"

from .cache import JsonChangeCache, MemoryChangeCache
from .exceptions import (
    ArchiveCorrupt,
    ExtractionIOError,
    FolderNotFound,
    GhdirError,
    InvalidSourceURL,
    MaterializationFailed,
    RemoteUnavailable,
    RollbackFailed,
    SparseCheckoutFailed,
)
from .extract import ExtractionStats, extract_tarball
from .fetcher import Fetcher
from .locator import FetchTarget, parse_github_url
from .materialize import StagingArea, atomic_replace
from .models.config import GhdirConfig
from .models.events import EventType, FetchEvent, FetchResult, FetchStatus
from .strategy import Strategy, needs_confirmation, select_strategy
from .vcs import GitSparseCheckout

__all__ = [
    "__version__",
    # Core
    "Fetcher",
    "FetchTarget",
    "parse_github_url",
    "Strategy",
    "select_strategy",
    "needs_confirmation",
    "extract_tarball",
    "ExtractionStats",
    "StagingArea",
    "atomic_replace",
    "GitSparseCheckout",
    # Cache
    "JsonChangeCache",
    "MemoryChangeCache",
    # Config
    "GhdirConfig",
    # Events
    "EventType",
    "FetchEvent",
    "FetchResult",
    "FetchStatus",
    # Errors
    "GhdirError",
    "InvalidSourceURL",
    "RemoteUnavailable",
    "ArchiveCorrupt",
    "ExtractionIOError",
    "FolderNotFound",
    "SparseCheckoutFailed",
    "MaterializationFailed",
    "RollbackFailed",
]
