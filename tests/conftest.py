"""Shared fixtures for ghdir tests."""

import io
import logging
import tarfile
from contextlib import contextmanager
from typing import Optional

import pytest

from ghdir.http.protocols import ArchiveDownload, ArchiveProbe


def build_tarball(entries: list[tuple], compress: bool = True) -> bytes:
    """
    Build a tarball in memory.

    Each entry is (name, content) or (name, content, mode). ``content`` is
    bytes for a regular file, None for a directory, or a str prefixed with
    "->" for a symlink target.
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz" if compress else "w") as tar:
        for entry in entries:
            name, content = entry[0], entry[1]
            info = tarfile.TarInfo(name)
            if content is None:
                info.type = tarfile.DIRTYPE
                info.mode = entry[2] if len(entry) > 2 else 0o755
                tar.addfile(info)
            elif isinstance(content, str) and content.startswith("->"):
                info.type = tarfile.SYMTYPE
                info.linkname = content[2:]
                tar.addfile(info)
            else:
                info.size = len(content)
                info.mode = entry[2] if len(entry) > 2 else 0o644
                tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


REPO_ENTRIES = [
    ("repo-main", None),
    ("repo-main/README.md", b"# repo\n"),
    ("repo-main/src", None),
    ("repo-main/src/main.py", b"print('main')\n"),
    ("repo-main/src/lib", None),
    ("repo-main/src/lib/util.py", b"def util():\n    return 1\n"),
    ("repo-main/src/lib/run.sh", b"#!/bin/sh\necho run\n", 0o755),
    ("repo-main/src/lib/nested", None),
    ("repo-main/src/lib/nested/data.txt", b"data\n"),
    ("repo-main/docs", None),
    ("repo-main/docs/lib", None),
    ("repo-main/docs/lib/other.md", b"other\n"),
]


@pytest.fixture
def repo_tarball() -> bytes:
    """Archive shaped like a GitHub branch tarball of owner/repo@main."""
    return build_tarball(REPO_ENTRIES)


class FakeArchiveClient:
    """In-memory archive client recording every request."""

    def __init__(
        self,
        archive: bytes = b"",
        etag: Optional[str] = '"etag-1"',
        content_length: Optional[int] = None,
        probe_status: Optional[int] = None,
    ):
        self.archive = archive
        self.etag = etag
        self.content_length = content_length
        self.probe_status = probe_status
        self.probes: list[tuple[str, Optional[str]]] = []
        self.downloads: list[tuple[str, Optional[str]]] = []

    def _not_modified(self, etag: Optional[str]) -> bool:
        return etag is not None and etag == self.etag

    def probe(self, url: str, *, etag: Optional[str] = None) -> ArchiveProbe:
        self.probes.append((url, etag))
        status = self.probe_status or (304 if self._not_modified(etag) else 200)
        length = self.content_length if self.content_length is not None else len(self.archive)
        return ArchiveProbe(status_code=status, content_length=length, revision_token=self.etag)

    @contextmanager
    def download(self, url: str, *, etag: Optional[str] = None):
        self.downloads.append((url, etag))
        if self._not_modified(etag):
            yield ArchiveDownload(status_code=304, stream=None)
            return
        yield ArchiveDownload(
            status_code=200,
            stream=io.BytesIO(self.archive),
            content_length=len(self.archive),
            revision_token=self.etag,
        )


@pytest.fixture
def fake_client(repo_tarball) -> FakeArchiveClient:
    return FakeArchiveClient(archive=repo_tarball)


def snapshot(root) -> dict[str, bytes]:
    """Map every file below ``root`` to its content (directories map to b"<dir>")."""
    result = {}
    for path in sorted(root.rglob("*")):
        key = path.relative_to(root).as_posix()
        result[key] = b"<dir>" if path.is_dir() else path.read_bytes()
    return result


@pytest.fixture
def make_tarball():
    return build_tarball


@pytest.fixture
def make_client():
    return FakeArchiveClient


@pytest.fixture
def tree_snapshot():
    return snapshot


@pytest.fixture(autouse=True)
def reset_ghdir_logger():
    """Undo setup_logging() so log records keep reaching caplog."""
    yield
    logger = logging.getLogger("ghdir")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
