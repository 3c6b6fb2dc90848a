"""Tests for the git sparse-checkout retriever."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from ghdir.exceptions import SparseCheckoutFailed
from ghdir.locator import FetchTarget
from ghdir.vcs import GitSparseCheckout

TARGET = FetchTarget("owner", "repo", "dev", "src/lib")


def completed(returncode=0, stderr=""):
    return MagicMock(returncode=returncode, stdout="", stderr=stderr)


def fake_git(staging_dir, create_folder=True):
    """Simulate git: the checkout step populates the working tree."""

    def run(cmd, **kwargs):
        if "checkout" in cmd and "sparse-checkout" not in cmd:
            (staging_dir / ".git" / "objects").mkdir(parents=True)
            if create_folder:
                folder = staging_dir / "src" / "lib"
                folder.mkdir(parents=True)
                (folder / "util.py").write_text("x = 1\n")
        return completed()

    return run


class TestGitSparseCheckout:
    """Test GitSparseCheckout."""

    def test_commands(self, tmp_path):
        """Test the sequence of git invocations."""
        commands = GitSparseCheckout().commands(TARGET, tmp_path)

        assert commands == [
            [
                "clone",
                "--depth",
                "1",
                "--filter=blob:none",
                "--no-checkout",
                "--branch",
                "dev",
                "https://github.com/owner/repo.git",
                str(tmp_path),
            ],
            ["-C", str(tmp_path), "sparse-checkout", "init", "--cone"],
            ["-C", str(tmp_path), "sparse-checkout", "set", "src/lib"],
            ["-C", str(tmp_path), "checkout", "dev"],
        ]

    def test_retrieve(self, tmp_path):
        """Test a successful retrieval strips git metadata."""
        with patch("ghdir.vcs.subprocess.run", side_effect=fake_git(tmp_path)) as mock_run:
            folder = GitSparseCheckout().retrieve(TARGET, tmp_path)

        assert folder == tmp_path / "src" / "lib"
        assert (folder / "util.py").read_text() == "x = 1\n"
        assert not (tmp_path / ".git").exists()
        assert mock_run.call_count == 4
        first_cmd = mock_run.call_args_list[0][0][0]
        assert first_cmd[:2] == ["git", "clone"]

    def test_custom_git_and_timeout(self, tmp_path):
        """Test the executable and timeout are passed through."""
        retriever = GitSparseCheckout(git="/usr/local/bin/git", timeout=60)

        with patch("ghdir.vcs.subprocess.run", side_effect=fake_git(tmp_path)) as mock_run:
            retriever.retrieve(TARGET, tmp_path)

        for call in mock_run.call_args_list:
            assert call[0][0][0] == "/usr/local/bin/git"
            assert call[1]["timeout"] == 60

    def test_step_failure(self, tmp_path):
        """Test a non-zero exit stops the sequence and reports stderr."""
        with patch("ghdir.vcs.subprocess.run", return_value=completed(128, "fatal: Remote branch dev not found")) as mock_run:
            with pytest.raises(SparseCheckoutFailed, match="Remote branch dev not found"):
                GitSparseCheckout().retrieve(TARGET, tmp_path)

        assert mock_run.call_count == 1

    def test_git_missing(self, tmp_path):
        """Test a missing git binary."""
        with patch("ghdir.vcs.subprocess.run", side_effect=FileNotFoundError("git")):
            with pytest.raises(SparseCheckoutFailed, match="git executable not found"):
                GitSparseCheckout().retrieve(TARGET, tmp_path)

    def test_timeout(self, tmp_path):
        """Test a hanging git command."""
        with patch("ghdir.vcs.subprocess.run", side_effect=subprocess.TimeoutExpired(["git"], 5)):
            with pytest.raises(SparseCheckoutFailed, match="timed out"):
                GitSparseCheckout(timeout=5).retrieve(TARGET, tmp_path)

    def test_folder_missing_after_checkout(self, tmp_path):
        """Test a subfolder that does not exist on the branch."""
        with patch("ghdir.vcs.subprocess.run", side_effect=fake_git(tmp_path, create_folder=False)):
            with pytest.raises(SparseCheckoutFailed, match="not found"):
                GitSparseCheckout().retrieve(TARGET, tmp_path)

    def test_requires_subfolder(self, tmp_path):
        """Test root fetches are rejected."""
        with patch("ghdir.vcs.subprocess.run") as mock_run:
            with pytest.raises(SparseCheckoutFailed):
                GitSparseCheckout().retrieve(FetchTarget("owner", "repo"), tmp_path)

        mock_run.assert_not_called()
