"""HTTP access to the repository archive endpoint."""

from .client import RequestsArchiveClient
from .protocols import ArchiveClient, ArchiveDownload, ArchiveProbe

__all__ = ["ArchiveClient", "ArchiveDownload", "ArchiveProbe", "RequestsArchiveClient"]
