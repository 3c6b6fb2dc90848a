"""Tests for streaming tarball extraction."""

import io
import os
import sys

import pytest

from ghdir.exceptions import ArchiveCorrupt, ExtractionIOError
from ghdir.extract import ProgressReader, extract_tarball, relative_entry_path


class TestRelativeEntryPath:
    """Test entry path re-rooting."""

    def test_strip_wrapper(self):
        """Test only the wrapper directory is removed for root fetches."""
        assert relative_entry_path("repo-main/src/a.py", 1) == "src/a.py"
        assert relative_entry_path("repo-main/", 1) is None
        assert relative_entry_path("repo-main", 1) is None

    def test_strip_subfolder(self):
        """Test the wrapper and the subfolder segments are removed."""
        assert relative_entry_path("repo-main/src/lib/a.py", 3, "src/lib") == "a.py"
        assert relative_entry_path("repo-main/src/lib/x/", 3, "src/lib") == "x"
        assert relative_entry_path("repo-main/src/lib/", 3, "src/lib") is None

    def test_output_has_exactly_stripped_segments(self):
        """Test the output keeps every segment after the stripped ones."""
        name = "w/a/b/c/d/e"
        for depth in range(6):
            expected = "/".join(name.split("/")[depth:]) or None
            assert relative_entry_path(name, depth) == expected

    def test_prefix_filters_other_folders(self):
        """Test entries outside the requested subfolder are dropped."""
        assert relative_entry_path("repo-main/docs/lib/other.md", 3, "src/lib") is None
        assert relative_entry_path("repo-main/src/main.py", 3, "src/lib") is None
        assert relative_entry_path("repo-main/src/library/x.py", 3, "src/lib") is None

    def test_dot_segments(self):
        """Test "./" prefixes and empty segments are ignored."""
        assert relative_entry_path("./repo-main//src/a.py", 1) == "src/a.py"

    def test_parent_segments_rejected(self):
        """Test entries escaping the destination are skipped."""
        assert relative_entry_path("repo-main/../../etc/passwd", 1) is None


class TestExtractTarball:
    """Test extract_tarball."""

    def test_extract_subfolder(self, tmp_path, repo_tarball, tree_snapshot):
        """Test only the requested folder is written, re-rooted."""
        stats = extract_tarball(io.BytesIO(repo_tarball), tmp_path, strip_depth=3, prefix="src/lib")

        assert tree_snapshot(tmp_path) == {
            "nested": b"<dir>",
            "nested/data.txt": b"data\n",
            "run.sh": b"#!/bin/sh\necho run\n",
            "util.py": b"def util():\n    return 1\n",
        }
        assert stats.files == 3
        assert stats.directories == 1
        assert stats.total == 4

    def test_extract_root(self, tmp_path, repo_tarball):
        """Test a root fetch writes the whole repository without the wrapper."""
        stats = extract_tarball(io.BytesIO(repo_tarball), tmp_path, strip_depth=1)

        assert (tmp_path / "README.md").read_bytes() == b"# repo\n"
        assert (tmp_path / "src" / "lib" / "util.py").exists()
        assert (tmp_path / "docs" / "lib" / "other.md").exists()
        assert not (tmp_path / "repo-main").exists()
        assert stats.total == 11

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_modes_preserved(self, tmp_path, repo_tarball):
        """Test permission bits from the archive are applied."""
        extract_tarball(io.BytesIO(repo_tarball), tmp_path, strip_depth=3, prefix="src/lib")

        assert os.stat(tmp_path / "run.sh").st_mode & 0o777 == 0o755
        assert os.stat(tmp_path / "util.py").st_mode & 0o777 == 0o644

    def test_missing_parent_directories_created(self, tmp_path, make_tarball):
        """Test files whose directory entry is absent still extract."""
        archive = make_tarball([("repo-main/a/b/c.txt", b"c")])

        extract_tarball(io.BytesIO(archive), tmp_path, strip_depth=1)

        assert (tmp_path / "a" / "b" / "c.txt").read_bytes() == b"c"

    def test_symlinks_skipped(self, tmp_path, make_tarball):
        """Test links are not materialized."""
        archive = make_tarball(
            [
                ("repo-main/real.txt", b"real"),
                ("repo-main/link.txt", "->real.txt"),
            ]
        )

        stats = extract_tarball(io.BytesIO(archive), tmp_path, strip_depth=1)

        assert (tmp_path / "real.txt").exists()
        assert not os.path.lexists(tmp_path / "link.txt")
        assert stats.skipped == 1
        assert stats.total == 1

    def test_traversal_entries_skipped(self, tmp_path, make_tarball):
        """Test entries with parent segments never leave the destination."""
        dest = tmp_path / "dest"
        dest.mkdir()
        archive = make_tarball(
            [
                ("repo-main/ok.txt", b"ok"),
                ("repo-main/../evil.txt", b"evil"),
            ]
        )

        extract_tarball(io.BytesIO(archive), dest, strip_depth=1)

        assert (dest / "ok.txt").exists()
        assert not (tmp_path / "evil.txt").exists()

    def test_observer_sees_bytes(self, tmp_path, repo_tarball):
        """Test the observer receives the compressed byte counts."""
        seen = []

        extract_tarball(io.BytesIO(repo_tarball), tmp_path, strip_depth=1, observer=seen.append)

        assert seen
        assert all(n > 0 for n in seen)
        assert 0 < sum(seen) <= len(repo_tarball)

    def test_not_gzip(self, tmp_path):
        """Test a non-gzip stream is reported as corrupt."""
        with pytest.raises(ArchiveCorrupt):
            extract_tarball(io.BytesIO(b"<html>not found</html>"), tmp_path, strip_depth=1)

    def test_empty_stream(self, tmp_path):
        """Test an empty body is reported as corrupt."""
        with pytest.raises(ArchiveCorrupt):
            extract_tarball(io.BytesIO(b""), tmp_path, strip_depth=1)

    def test_truncated_stream(self, tmp_path, make_tarball):
        """Test an archive cut off mid-stream is reported as corrupt."""
        archive = make_tarball([("repo-main/big.bin", os.urandom(256 * 1024))])

        with pytest.raises(ArchiveCorrupt):
            extract_tarball(io.BytesIO(archive[: len(archive) // 2]), tmp_path, strip_depth=1)

    def test_write_failure(self, tmp_path, make_tarball):
        """Test an unwritable destination raises ExtractionIOError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        archive = make_tarball([("repo-main/a.txt", b"a")])

        with pytest.raises(ExtractionIOError):
            extract_tarball(io.BytesIO(archive), blocker, strip_depth=1)


class TestProgressReader:
    """Test the pass-through progress reader."""

    def test_bytes_unchanged(self):
        """Test data passes through in order while counts are reported."""
        counts = []
        reader = ProgressReader(io.BytesIO(b"abcdef"), counts.append)

        assert reader.read(4) == b"abcd"
        assert reader.read(4) == b"ef"
        assert reader.read(4) == b""
        assert counts == [4, 2]
        assert reader.bytes_read == 6
