"""Streaming extraction of repository tarballs with path re-rooting."""

import logging
import os
import tarfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from .exceptions import ArchiveCorrupt, ExtractionIOError

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[int], None]

CHUNK_SIZE = 64 * 1024

# Errors raised while decompressing or parsing the archive
_READ_ERRORS = (tarfile.TarError, zlib.error, EOFError, OSError)


@dataclass
class ExtractionStats:
    """Counts of what the extraction wrote and skipped."""

    files: int = 0
    directories: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.files + self.directories


class ProgressReader:
    """
    Pass-through reader reporting every chunk to an observer.

    Bytes are returned unchanged and in order; the observer only sees
    their count.
    """

    def __init__(self, stream: BinaryIO, observer: ProgressObserver):
        self._stream = stream
        self._observer = observer
        self.bytes_read = 0

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        if data:
            self.bytes_read += len(data)
            self._observer(len(data))
        return data


def relative_entry_path(name: str, strip_depth: int, prefix: str = "") -> Optional[str]:
    """
    Compute where an archive entry lands relative to the destination root.

    Args:
        name: Entry path as recorded in the archive
        strip_depth: Leading segments to drop (wrapper directory + subfolder)
        prefix: Subfolder the stripped segments must belong to ("" for any)

    Returns:
        Slash-joined relative path, or None if the entry produces no output
    """
    parts = [part for part in name.split("/") if part not in ("", ".")]
    if len(parts) <= strip_depth:
        return None

    prefix_parts = [part for part in prefix.split("/") if part]
    if prefix_parts and parts[1 : 1 + len(prefix_parts)] != prefix_parts:
        return None

    remainder = parts[strip_depth:]
    if ".." in remainder:
        logger.warning(f"Skipping archive entry escaping the destination: {name}")
        return None

    return "/".join(remainder)


def _read_chunk(source: BinaryIO, name: str) -> bytes:
    try:
        return source.read(CHUNK_SIZE)
    except _READ_ERRORS as e:
        raise ArchiveCorrupt(f"Cannot read {name} from archive: {e}") from e


def _write_file(source: BinaryIO, target: Path, mode: int, name: str) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        out = open(target, "wb")
    except OSError as e:
        raise ExtractionIOError(f"Cannot create {target}: {e}") from e

    with out:
        while True:
            chunk = _read_chunk(source, name)
            if not chunk:
                break
            try:
                out.write(chunk)
            except OSError as e:
                raise ExtractionIOError(f"Cannot write {target}: {e}") from e

    if mode:
        try:
            os.chmod(target, mode & 0o777)
        except OSError as e:
            raise ExtractionIOError(f"Cannot set permissions on {target}: {e}") from e


def extract_tarball(
    stream: BinaryIO,
    dest: Path,
    strip_depth: int,
    prefix: str = "",
    observer: Optional[ProgressObserver] = None,
) -> ExtractionStats:
    """
    Extract a gzip-compressed tarball read sequentially from ``stream``.

    Each entry's path is split on "/", the first ``strip_depth`` segments are
    dropped and the remainder is written below ``dest``. Entries with no
    remaining segments, or outside ``prefix``, are skipped. Only directories
    and regular files are materialized; links and special files are skipped.

    Args:
        stream: Readable byte stream of the compressed archive
        dest: Destination root (staging directory or final output directory)
        strip_depth: Number of leading path segments to discard
        prefix: Subfolder (relative to the wrapper directory) to keep
        observer: Optional callback receiving byte counts as they are read

    Returns:
        ExtractionStats with counts of written files and directories

    Raises:
        ArchiveCorrupt: If the stream is not a readable gzip tarball
        ExtractionIOError: If writing to ``dest`` fails
    """
    dest = Path(dest)
    if observer is not None:
        stream = ProgressReader(stream, observer)

    try:
        tar = tarfile.open(fileobj=stream, mode="r|gz")
    except _READ_ERRORS as e:
        raise ArchiveCorrupt(f"Cannot open archive: {e}") from e

    stats = ExtractionStats()
    with tar:
        members = iter(tar)
        while True:
            try:
                member = next(members)
            except StopIteration:
                break
            except _READ_ERRORS as e:
                raise ArchiveCorrupt(f"Error while unpacking archive: {e}") from e

            relative = relative_entry_path(member.name, strip_depth, prefix)
            if relative is None:
                continue

            target = dest / relative
            if member.isdir():
                try:
                    target.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise ExtractionIOError(f"Cannot create directory {target}: {e}") from e
                stats.directories += 1
            elif member.isfile():
                source = tar.extractfile(member)
                if source is None:
                    stats.skipped += 1
                    continue
                _write_file(source, target, member.mode, member.name)
                stats.files += 1
            else:
                logger.debug(f"Skipping unsupported archive entry: {member.name}")
                stats.skipped += 1

    logger.debug(f"Extracted {stats.files} files and {stats.directories} directories into {dest}")
    return stats
