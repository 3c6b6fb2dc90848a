"""Parse GitHub URLs into fetch targets."""

from dataclasses import dataclass
from urllib.parse import unquote, urlparse

from .exceptions import InvalidSourceURL

DEFAULT_BRANCH = "main"
DEFAULT_HOST = "github.com"

# Path marker preceding the branch name in browser URLs
TREE_MARKER = "tree"


@dataclass(frozen=True)
class FetchTarget:
    """
    Immutable description of what to fetch.

    Attributes:
        owner: Repository owner (user or organization)
        repository: Repository name
        branch: Branch to download
        subfolder: Slash-separated path inside the repository ("" for the root)
    """

    owner: str
    repository: str
    branch: str = DEFAULT_BRANCH
    subfolder: str = ""

    @property
    def cache_key(self) -> str:
        """Key under which the last-seen revision token is stored."""
        return f"{self.owner}/{self.repository}/{self.branch}/{self.subfolder}"

    @property
    def subfolder_parts(self) -> list[str]:
        return [part for part in self.subfolder.split("/") if part]

    @property
    def strip_depth(self) -> int:
        """
        Number of leading path segments to drop from every archive entry.

        Archives wrap everything in one ``repository-branch/`` directory, so
        the depth is that wrapper plus every segment of the subfolder.
        """
        return 1 + len(self.subfolder_parts)

    @property
    def target_name(self) -> str:
        """Local directory name: last subfolder segment, or "." for the root."""
        parts = self.subfolder_parts
        return parts[-1] if parts else "."

    def archive_url(self, host: str = DEFAULT_HOST) -> str:
        return f"https://{host}/{self.owner}/{self.repository}/archive/refs/heads/{self.branch}.tar.gz"

    def clone_url(self, host: str = DEFAULT_HOST) -> str:
        return f"https://{host}/{self.owner}/{self.repository}.git"


def parse_github_url(raw: str, default_branch: str = DEFAULT_BRANCH) -> FetchTarget:
    """
    Parse a GitHub URL into a FetchTarget.

    Supports:
      https://github.com/owner/repo
      https://github.com/owner/repo/tree/branch
      https://github.com/owner/repo/tree/branch/path/to/folder

    Args:
        raw: URL as typed by the user
        default_branch: Branch used when the URL names none

    Returns:
        Parsed FetchTarget

    Raises:
        InvalidSourceURL: If the path has fewer than two segments
    """
    path = urlparse(raw.strip()).path
    # Browser URLs percent-encode spaces and non-ASCII names; archive entries do not
    parts = [unquote(part) for part in path.split("/") if part]

    if len(parts) < 2:
        raise InvalidSourceURL(f"Invalid GitHub URL: {raw!r} (expected https://github.com/<owner>/<repo>)")

    owner = parts[0]
    repository = parts[1]
    if repository.endswith(".git"):
        repository = repository[: -len(".git")]
    if not repository:
        raise InvalidSourceURL(f"Invalid GitHub URL: {raw!r} (empty repository name)")

    for i in range(2, len(parts) - 1):
        if parts[i] == TREE_MARKER:
            return FetchTarget(
                owner=owner,
                repository=repository,
                branch=parts[i + 1],
                subfolder="/".join(parts[i + 2 :]),
            )

    return FetchTarget(owner=owner, repository=repository, branch=default_branch)
