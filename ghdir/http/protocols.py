"""Protocol definitions for the archive endpoint client."""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import BinaryIO, Protocol

NOT_MODIFIED = 304


@dataclass(frozen=True)
class ArchiveProbe:
    """
    Result of a metadata-only request against the archive URL.

    Attributes:
        status_code: HTTP status code of the HEAD request
        content_length: Advertised archive size in bytes (None when unknown)
        revision_token: ETag reported by the host, if any
    """

    status_code: int
    content_length: int | None = None
    revision_token: str | None = None

    @property
    def not_modified(self) -> bool:
        return self.status_code == NOT_MODIFIED


@dataclass
class ArchiveDownload:
    """
    Open archive download.

    ``stream`` is None when the host answered "not modified".
    """

    status_code: int
    stream: BinaryIO | None
    content_length: int | None = None
    revision_token: str | None = None

    @property
    def not_modified(self) -> bool:
        return self.status_code == NOT_MODIFIED


class ArchiveClient(Protocol):
    """
    Protocol for clients of the remote archive endpoint.

    This abstraction allows fake implementations in tests.
    """

    def probe(self, url: str, *, etag: str | None = None) -> ArchiveProbe:
        """
        Perform a HEAD request, conditional on ``etag`` when given.

        Raises:
            RemoteUnavailable: On network errors or unexpected status codes
        """
        ...

    def download(self, url: str, *, etag: str | None = None) -> AbstractContextManager[ArchiveDownload]:
        """
        Open a streaming GET request, conditional on ``etag`` when given.

        Raises:
            RemoteUnavailable: On network errors or unexpected status codes
        """
        ...
