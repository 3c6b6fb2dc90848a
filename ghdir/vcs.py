"""Sparse-checkout retrieval through the git command-line client."""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Protocol

from .exceptions import SparseCheckoutFailed
from .locator import DEFAULT_HOST, FetchTarget

logger = logging.getLogger(__name__)


class LargeRepoRetriever(Protocol):
    """Retrieves a single subfolder when the archive is too large to download."""

    def retrieve(self, target: FetchTarget, staging_dir: Path) -> Path:
        """
        Populate ``staging_dir`` and return the directory holding the subfolder.

        Raises:
            SparseCheckoutFailed: If retrieval fails
        """
        ...


class GitSparseCheckout:
    """Fetch one subfolder with a shallow, blob-filtered, cone-mode sparse checkout."""

    def __init__(self, host: str = DEFAULT_HOST, git: str = "git", timeout: Optional[float] = None):
        """
        Initialize the retriever.

        Args:
            host: Git host to clone from
            git: git executable name or path
            timeout: Per-command timeout in seconds (None = no limit)
        """
        self.host = host
        self.git = git
        self.timeout = timeout

    def _run_git(self, *args: str) -> str:
        """
        Run a git command.

        Args:
            *args: Git command arguments

        Returns:
            Command stdout

        Raises:
            SparseCheckoutFailed: If the command cannot run or exits non-zero
        """
        cmd = [self.git, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise SparseCheckoutFailed(f"git executable not found ({self.git}); it is required for large repositories") from e
        except subprocess.TimeoutExpired as e:
            raise SparseCheckoutFailed(f"git {args[0]} timed out after {self.timeout}s") from e
        except OSError as e:
            raise SparseCheckoutFailed(f"Cannot run git {args[0]}: {e}") from e

        if result.returncode != 0:
            raise SparseCheckoutFailed(f"git {' '.join(args[:3])} failed: {result.stderr.strip()}")

        return result.stdout

    def commands(self, target: FetchTarget, staging_dir: Path) -> list[list[str]]:
        """The git invocations performed for ``target``, in order."""
        repo = str(staging_dir)
        return [
            [
                "clone",
                "--depth",
                "1",
                "--filter=blob:none",
                "--no-checkout",
                "--branch",
                target.branch,
                target.clone_url(self.host),
                repo,
            ],
            ["-C", repo, "sparse-checkout", "init", "--cone"],
            ["-C", repo, "sparse-checkout", "set", target.subfolder],
            ["-C", repo, "checkout", target.branch],
        ]

    def retrieve(self, target: FetchTarget, staging_dir: Path) -> Path:
        """
        Check out ``target.subfolder`` into ``staging_dir`` and strip git metadata.

        Args:
            target: What to fetch (subfolder must be non-empty)
            staging_dir: Empty directory owned by this run

        Returns:
            Path of the subfolder inside ``staging_dir``

        Raises:
            SparseCheckoutFailed: If any git step fails or the subfolder is missing
        """
        if not target.subfolder:
            raise SparseCheckoutFailed("Sparse checkout requires a subfolder")

        staging_dir = Path(staging_dir)
        for args in self.commands(target, staging_dir):
            self._run_git(*args)

        try:
            shutil.rmtree(staging_dir / ".git")
        except OSError as e:
            raise SparseCheckoutFailed(f"Cannot remove git metadata from {staging_dir}: {e}") from e

        folder = staging_dir.joinpath(*target.subfolder_parts)
        if not folder.is_dir():
            raise SparseCheckoutFailed(f"Folder '{target.subfolder}' not found on branch {target.branch}")

        logger.info(f"Sparse checkout of {target.subfolder} completed")
        return folder
