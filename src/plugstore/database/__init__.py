"""
Plugstore database layer: remote sources, the two-tier cache and the facade
that decides between them.
"""

from .async_client import AsyncStoreClient
from .cache import CacheStore
from .installed import read_installed_plugins
from .interfaces import (
    CacheLookup,
    CacheTier,
    Database,
    FetchedDocument,
    ReadmeRef,
    Repository,
)
from .orchestrator import DatabaseFacade
from .readme import process_readme_content
from .sources import GitHubFetcher, GitLabFetcher, ReadmeFetcher, fetcher_for

__all__ = [
    "AsyncStoreClient",
    "CacheLookup",
    "CacheStore",
    "CacheTier",
    "Database",
    "DatabaseFacade",
    "FetchedDocument",
    "GitHubFetcher",
    "GitLabFetcher",
    "ReadmeFetcher",
    "ReadmeRef",
    "Repository",
    "fetcher_for",
    "process_readme_content",
    "read_installed_plugins",
]
