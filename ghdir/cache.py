"""Change cache mapping fetch targets to the last-seen archive ETag."""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "ghdir"
CACHE_FILENAME = "cache.json"


def user_config_dir() -> Path:
    """
    Return the per-user configuration directory for this platform.

    Linux/BSD: $XDG_CONFIG_HOME or ~/.config
    macOS: ~/Library/Application Support
    Windows: %APPDATA%
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata)
        return Path.home() / "AppData" / "Roaming"

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg and Path(xdg).is_absolute():
        return Path(xdg)
    return Path.home() / ".config"


def default_cache_file() -> Path:
    return user_config_dir() / CACHE_NAMESPACE / CACHE_FILENAME


class ChangeCache(Protocol):
    """Store for revision tokens. Loaded once per run, saved at most once."""

    def load(self) -> dict[str, str]: ...

    def save(self, mapping: dict[str, str]) -> None: ...


class JsonChangeCache:
    """
    Change cache persisted as a single pretty-printed JSON object.

    Failures never propagate: an unreadable file loads as an empty mapping
    and a failed save only costs a redundant download next time. There is
    no cross-process locking; the last writer wins.
    """

    def __init__(self, cache_file: Optional[Path] = None):
        """
        Args:
            cache_file: Path of the JSON file (default: <user config dir>/ghdir/cache.json)
        """
        self.cache_file = Path(cache_file) if cache_file is not None else default_cache_file()

    def load(self) -> dict[str, str]:
        """Load the cache, returning an empty mapping on any problem."""
        try:
            with open(self.cache_file, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load cache {self.cache_file}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring cache {self.cache_file}: not a JSON object")
            return {}

        return {key: value for key, value in data.items() if isinstance(value, str)}

    def save(self, mapping: dict[str, str]) -> None:
        """Persist the cache. Errors are logged and swallowed."""
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_file, "w", encoding="utf-8") as f:
                json.dump(mapping, f, indent=1, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not save cache {self.cache_file}: {e}")
            return

        logger.debug(f"Saved {len(mapping)} cache entries to {self.cache_file}")


class MemoryChangeCache:
    """In-memory change cache, used with --no-cache and in tests."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})
        self.saves = 0

    def load(self) -> dict[str, str]:
        return dict(self.data)

    def save(self, mapping: dict[str, str]) -> None:
        self.data = dict(mapping)
        self.saves += 1
