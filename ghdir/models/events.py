"""Result types returned by the fetch engine."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..locator import FetchTarget
from ..strategy import Strategy


class FetchStatus(str, Enum):
    """Outcome of a run."""

    FETCHED = "fetched"
    UNCHANGED = "unchanged"
    DECLINED = "declined"


class EventType(str, Enum):
    """Types of events emitted while a target is fetched."""

    PROBING = "probing"
    STRATEGY_SELECTED = "strategy_selected"

    DOWNLOAD_STARTED = "download_started"
    DOWNLOAD_PROGRESS = "download_progress"
    DOWNLOAD_FINISHED = "download_finished"

    SPARSE_CHECKOUT_STARTED = "sparse_checkout_started"
    MATERIALIZED = "materialized"


@dataclass
class FetchEvent:
    """
    Event emitted during a fetch.

    Example:
        def on_event(event: FetchEvent) -> None:
            if event.type == EventType.DOWNLOAD_PROGRESS:
                bar.advance(event.nbytes)
    """

    type: EventType
    target: FetchTarget
    strategy: Optional[Strategy] = None
    total: Optional[int] = None
    nbytes: int = 0
    path: Optional[Path] = None


@dataclass
class FetchResult:
    """
    Outcome of fetching one target.

    Attributes:
        status: What happened
        target: Parsed target
        strategy: Strategy used (None when the run was declined before choosing)
        entries: Files and directories materialized
        path: Final location of the folder (None unless fetched)
        revision_token: ETag recorded in the cache for this target
        content_length: Archive size advertised by the host, if known
    """

    status: FetchStatus
    target: FetchTarget
    strategy: Optional[Strategy] = None
    entries: int = 0
    path: Optional[Path] = None
    revision_token: Optional[str] = None
    content_length: Optional[int] = None

    @property
    def changed(self) -> bool:
        return self.status == FetchStatus.FETCHED
