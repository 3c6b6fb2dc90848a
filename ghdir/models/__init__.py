"""Configuration and result models."""

from .config import ByteSize, CacheConfig, GhdirConfig, NetworkConfig, ThresholdConfig
from .events import EventType, FetchEvent, FetchResult, FetchStatus

__all__ = [
    "ByteSize",
    "CacheConfig",
    "EventType",
    "FetchEvent",
    "FetchResult",
    "FetchStatus",
    "GhdirConfig",
    "NetworkConfig",
    "ThresholdConfig",
]
