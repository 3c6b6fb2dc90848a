"""Blocking HTTP client for the GitHub archive endpoint."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from types import TracebackType

import requests
from requests.structures import CaseInsensitiveDict

from .. import __version__
from ..exceptions import RemoteUnavailable
from .protocols import NOT_MODIFIED, ArchiveDownload, ArchiveProbe

logger = logging.getLogger(__name__)


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def _content_length(headers: CaseInsensitiveDict) -> int | None:
    value = headers.get("Content-Length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        logger.debug(f"Ignoring malformed Content-Length: {value!r}")
        return None
    return length if length >= 0 else None


class ResponseStream:
    """
    Read-only file object over a streamed response body.

    Network failures in the middle of the body surface as RemoteUnavailable
    instead of leaking transport exceptions into the archive reader.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self, response: requests.Response):
        self._url = response.url
        self._chunks = response.iter_content(chunk_size=self.CHUNK_SIZE)
        self._buffer = b""
        self._eof = False

    def readable(self) -> bool:
        return True

    def _next_chunk(self) -> bytes:
        try:
            return next(self._chunks)
        except StopIteration:
            self._eof = True
            return b""
        except requests.RequestException as e:
            raise RemoteUnavailable(f"Download of {self._url} interrupted: {e}") from e

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            parts = [self._buffer]
            while not self._eof:
                parts.append(self._next_chunk())
            self._buffer = b""
            return b"".join(parts)

        while len(self._buffer) < size and not self._eof:
            self._buffer += self._next_chunk()

        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data


class RequestsArchiveClient:
    """
    Archive client backed by a ``requests.Session``.

    Both requests follow redirects (GitHub answers archive URLs with a
    redirect to codeload) and send ``If-None-Match`` when a cached ETag
    is known. No request is retried.

    Example:
        with RequestsArchiveClient(timeout=30) as client:
            probe = client.probe(url, etag=cached)
            with client.download(url, etag=cached) as download:
                extract_tarball(download.stream, ...)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            timeout: Connect/read timeout in seconds
            user_agent: Custom User-Agent string
            session: Pre-built session (mainly for tests)
        """
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers["User-Agent"] = user_agent or f"ghdir/{__version__}"

    def __enter__(self) -> RequestsArchiveClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def _headers(self, etag: str | None) -> dict[str, str]:
        return {"If-None-Match": etag} if etag else {}

    def probe(self, url: str, *, etag: str | None = None) -> ArchiveProbe:
        """
        Perform a HEAD request against the archive URL.

        Args:
            url: Archive URL
            etag: Cached revision token for a conditional request

        Returns:
            ArchiveProbe with status, size and ETag

        Raises:
            RemoteUnavailable: On network errors or a status other than 2xx/304
        """
        logger.debug(f"HEAD {url} (If-None-Match: {etag})")
        try:
            response = self._session.head(
                url,
                headers=self._headers(etag),
                timeout=self._timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise RemoteUnavailable(f"Cannot reach {url}: {e}") from e

        if response.status_code != NOT_MODIFIED and not _is_success(response.status_code):
            raise RemoteUnavailable(f"Cannot access repository archive {url} (HTTP {response.status_code})")

        probe = ArchiveProbe(
            status_code=response.status_code,
            content_length=_content_length(response.headers),
            revision_token=response.headers.get("ETag"),
        )
        logger.debug(f"Probe result: {probe}")
        return probe

    @contextmanager
    def download(self, url: str, *, etag: str | None = None) -> Iterator[ArchiveDownload]:
        """
        Open a streaming GET request for the archive.

        The yielded ``stream`` is the still gzip-compressed body. The
        response is closed when the context exits.

        Raises:
            RemoteUnavailable: On network errors or a status other than 2xx/304
        """
        logger.debug(f"GET {url} (If-None-Match: {etag})")
        try:
            response = self._session.get(
                url,
                headers=self._headers(etag),
                timeout=self._timeout,
                allow_redirects=True,
                stream=True,
            )
        except requests.RequestException as e:
            raise RemoteUnavailable(f"Cannot download {url}: {e}") from e

        try:
            if response.status_code == NOT_MODIFIED:
                yield ArchiveDownload(status_code=NOT_MODIFIED, stream=None)
                return

            if not _is_success(response.status_code):
                raise RemoteUnavailable(f"Cannot download repository archive {url} (HTTP {response.status_code})")

            yield ArchiveDownload(
                status_code=response.status_code,
                stream=ResponseStream(response),
                content_length=_content_length(response.headers),
                revision_token=response.headers.get("ETag"),
            )
        finally:
            response.close()
