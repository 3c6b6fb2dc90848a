"""Pydantic configuration models for ghdir."""

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from ..strategy import CONFIRM_THRESHOLD, SPARSE_THRESHOLD


class ByteSize(int):
    """
    Custom type that parses human-readable byte sizes.

    Accepts:
        - Integers (bytes)
        - Strings like '500mb', '2gb'

    Examples:
        >>> ByteSize._parse('500mb')
        524288000
        >>> ByteSize._parse(1024)
        1024
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> Any:
        from pydantic_core import core_schema

        return core_schema.no_info_plain_validator_function(cls._parse)

    @classmethod
    def _parse(cls, v: Any) -> int:
        if isinstance(v, bool):
            raise ValueError(f"Invalid byte size: {v}")
        if isinstance(v, int):
            if v < 0:
                raise ValueError(f"Byte size must not be negative: {v}")
            return v
        if isinstance(v, str):
            v = v.lower().strip()
            # Order matters: check longer suffixes first
            units = [("gb", 1024**3), ("mb", 1024**2), ("kb", 1024), ("b", 1)]
            for unit, mult in units:
                if v.endswith(unit):
                    num_str = v[: -len(unit)].strip()
                    try:
                        size = int(float(num_str) * mult)
                    except ValueError as err:
                        raise ValueError(f"Invalid number in byte size: {v}") from err
                    if size < 0:
                        raise ValueError(f"Byte size must not be negative: {v}")
                    return size
            try:
                return cls._parse(int(v))
            except ValueError:
                pass
        raise ValueError(f"Invalid byte size: {v}. Use format like '500mb', '2gb', or integer bytes.")


class ThresholdConfig(BaseModel):
    """Archive size thresholds that drive the retrieval strategy."""

    sparse_bytes: ByteSize = Field(
        ByteSize(SPARSE_THRESHOLD),
        description="Use git sparse-checkout for subfolders when the archive is larger than this",
    )
    confirm_bytes: ByteSize = Field(
        ByteSize(CONFIRM_THRESHOLD),
        description="Ask for confirmation when the archive is larger than this",
    )

    model_config = {"extra": "forbid"}


class NetworkConfig(BaseModel):
    """Configuration for HTTP requests."""

    timeout: float = Field(30.0, ge=1, description="Connect/read timeout in seconds")
    user_agent: Optional[str] = Field(None, description="Custom User-Agent header")

    model_config = {"extra": "forbid"}


class CacheConfig(BaseModel):
    """Configuration for the change cache."""

    enabled: bool = Field(True, description="Skip downloads when the archive ETag is unchanged")
    file: Optional[Path] = Field(
        None,
        description="Cache file (default: <user config dir>/ghdir/cache.json)",
    )

    model_config = {"extra": "forbid"}


class GhdirConfig(BaseModel):
    """
    Root configuration model for ghdir.

    YAML format:
        output_dir: ./vendor
        thresholds:
          sparse_bytes: 200mb
        network:
          timeout: 60
        cache:
          enabled: false
    """

    host: str = Field("github.com", min_length=1, description="Repository host")
    default_branch: str = Field("main", min_length=1, description="Branch used when the URL names none")
    output_dir: Path = Field(Path("."), description="Directory the folder is written into")

    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    assume_yes: bool = Field(False, description="Skip the large-download confirmation")
    show_progress: bool = Field(True, description="Render a download progress bar")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "WARNING",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "GhdirConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "GhdirConfig":
        """Load config from YAML file."""
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"))

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)
