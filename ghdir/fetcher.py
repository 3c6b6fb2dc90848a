"""Fetch engine: probe, choose a strategy, retrieve, materialize, update the cache."""

import logging
import os
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from .cache import ChangeCache, JsonChangeCache, MemoryChangeCache
from .exceptions import ExtractionIOError, FolderNotFound, RemoteUnavailable
from .extract import extract_tarball
from .http.client import RequestsArchiveClient
from .http.protocols import ArchiveClient, ArchiveProbe
from .locator import FetchTarget, parse_github_url
from .materialize import StagingArea, atomic_replace
from .models.config import GhdirConfig
from .models.events import EventType, FetchEvent, FetchResult, FetchStatus
from .strategy import Strategy, needs_confirmation, select_strategy
from .vcs import GitSparseCheckout, LargeRepoRetriever

logger = logging.getLogger(__name__)

EventCallback = Callable[[FetchEvent], None]
ConfirmCallback = Callable[[ArchiveProbe], bool]


def count_entries(root: Path) -> int:
    """Count files and directories below ``root``, excluding ``root`` itself."""
    count = 0
    for _, dirnames, filenames in os.walk(root):
        count += len(dirnames) + len(filenames)
    return count


def _decline(probe: ArchiveProbe) -> bool:
    return False


class Fetcher:
    """
    Fetch one folder of a GitHub repository into the output directory.

    Collaborators are injected so the engine can run against fakes:
    the archive client, the change cache, the large-repo retriever, a
    confirmation callback for very large archives, and an event callback
    for progress reporting.

    Example:
        config = GhdirConfig(output_dir=Path("./vendor"))
        with Fetcher(config) as fetcher:
            result = fetcher.run("https://github.com/owner/repo/tree/main/src/lib")
            print(result.status, result.entries)
    """

    def __init__(
        self,
        config: Optional[GhdirConfig] = None,
        client: Optional[ArchiveClient] = None,
        cache: Optional[ChangeCache] = None,
        retriever: Optional[LargeRepoRetriever] = None,
        confirm: Optional[ConfirmCallback] = None,
        on_event: Optional[EventCallback] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            config: Configuration (defaults apply when None)
            client: Archive client (default: RequestsArchiveClient)
            cache: Change cache (default: JSON file, or in-memory when caching is disabled)
            retriever: Large-repo retriever (default: GitSparseCheckout)
            confirm: Asked before downloading archives above the confirmation threshold
            on_event: Receives FetchEvents for progress reporting
        """
        self.config = config or GhdirConfig()

        self._owns_client = client is None
        self.client: ArchiveClient = client or RequestsArchiveClient(
            timeout=self.config.network.timeout,
            user_agent=self.config.network.user_agent,
        )

        if cache is None:
            cache = JsonChangeCache(self.config.cache.file) if self.config.cache.enabled else MemoryChangeCache()
        self.cache = cache

        self.retriever: LargeRepoRetriever = retriever or GitSparseCheckout(host=self.config.host)
        self.confirm = confirm or _decline
        self.on_event = on_event

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client and isinstance(self.client, RequestsArchiveClient):
            self.client.close()

    def _emit(self, event_type: EventType, target: FetchTarget, **kwargs) -> None:
        if self.on_event is not None:
            self.on_event(FetchEvent(type=event_type, target=target, **kwargs))

    def run(self, url: str) -> FetchResult:
        """Parse ``url`` and fetch it."""
        return self.fetch(parse_github_url(url, default_branch=self.config.default_branch))

    def fetch(self, target: FetchTarget) -> FetchResult:
        """
        Fetch ``target`` into the configured output directory.

        Args:
            target: Parsed fetch target

        Returns:
            FetchResult describing what happened

        Raises:
            GhdirError: On any failure; no retry is attempted
        """
        tokens = self.cache.load()
        cached_token = tokens.get(target.cache_key)
        archive_url = target.archive_url(self.config.host)

        self._emit(EventType.PROBING, target)
        probe = self.client.probe(archive_url, etag=cached_token)
        strategy = select_strategy(
            target,
            probe,
            cached_token,
            sparse_threshold=self.config.thresholds.sparse_bytes,
        )
        logger.info(f"{target.cache_key}: strategy {strategy.value} (size: {probe.content_length})")

        if needs_confirmation(probe, self.config.thresholds.confirm_bytes):
            if not (self.config.assume_yes or self.confirm(probe)):
                logger.info("Large download declined")
                return FetchResult(
                    status=FetchStatus.DECLINED,
                    target=target,
                    content_length=probe.content_length,
                )

        self._emit(EventType.STRATEGY_SELECTED, target, strategy=strategy, total=probe.content_length)

        if strategy == Strategy.UNCHANGED:
            return self._unchanged(target, cached_token, probe.content_length)

        if strategy == Strategy.SPARSE_CHECKOUT:
            entries, path = self._sparse_checkout(target)
            token = probe.revision_token
        else:
            with self.client.download(archive_url, etag=cached_token) as download:
                if download.not_modified and cached_token:
                    return self._unchanged(target, cached_token, probe.content_length)
                if download.stream is None:
                    raise RemoteUnavailable(f"Unexpected 'not modified' response for {archive_url}")
                token = download.revision_token
                entries, path = self._download(target, download.stream, download.content_length)

        self._emit(EventType.MATERIALIZED, target, strategy=strategy, path=path)

        if token:
            tokens[target.cache_key] = token
            self.cache.save(tokens)

        return FetchResult(
            status=FetchStatus.FETCHED,
            target=target,
            strategy=strategy,
            entries=entries,
            path=path,
            revision_token=token,
            content_length=probe.content_length,
        )

    def _unchanged(self, target: FetchTarget, token: Optional[str], content_length: Optional[int]) -> FetchResult:
        logger.info(f"{target.cache_key} is unchanged")
        return FetchResult(
            status=FetchStatus.UNCHANGED,
            target=target,
            strategy=Strategy.UNCHANGED,
            revision_token=token,
            content_length=content_length,
        )

    def _download(self, target: FetchTarget, stream: BinaryIO, total: Optional[int]) -> tuple[int, Path]:
        """Extract the archive stream, atomically when a subfolder is requested."""
        output_dir = Path(self.config.output_dir)

        def observe(n: int) -> None:
            self._emit(EventType.DOWNLOAD_PROGRESS, target, nbytes=n, total=total)

        self._emit(EventType.DOWNLOAD_STARTED, target, total=total)
        try:
            if not target.subfolder:
                try:
                    output_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise ExtractionIOError(f"Cannot create output directory {output_dir}: {e}") from e
                stats = extract_tarball(stream, output_dir, target.strip_depth, observer=observe)
                return stats.total, output_dir

            with StagingArea(output_dir) as staging:
                stats = extract_tarball(
                    stream,
                    staging.path,
                    target.strip_depth,
                    prefix=target.subfolder,
                    observer=observe,
                )
                if stats.total == 0:
                    raise FolderNotFound(
                        f"Folder '{target.subfolder}' not found in {target.owner}/{target.repository}@{target.branch}"
                    )
                path = atomic_replace(staging.path, output_dir / target.target_name)
            return stats.total, path
        finally:
            self._emit(EventType.DOWNLOAD_FINISHED, target, total=total)

    def _sparse_checkout(self, target: FetchTarget) -> tuple[int, Path]:
        """Retrieve the subfolder with the large-repo retriever and swap it into place."""
        output_dir = Path(self.config.output_dir)
        self._emit(EventType.SPARSE_CHECKOUT_STARTED, target, strategy=Strategy.SPARSE_CHECKOUT)

        with StagingArea(output_dir) as staging:
            folder = self.retriever.retrieve(target, staging.path)
            path = atomic_replace(folder, output_dir / target.target_name)

        return count_entries(path), path
