"""
README sources.

Each hosting service exposes raw file content under its own URL dialect. A
ReadmeFetcher knows one dialect; fetcher_for() picks the fetcher matching a
repository's `source`.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, List
from urllib.parse import quote

from plugstore.constants import (
    GITHUB_RAW_BASE,
    GITLAB_BASE,
    SOURCE_GITHUB,
    SOURCE_GITLAB,
)
from plugstore.exceptions import ValidationError
from plugstore.log_utils import logger

from .interfaces import ReadmeRef, Repository, validate_full_name
from .readme import process_readme_content

if TYPE_CHECKING:
    from .async_client import AsyncStoreClient


def _quote_path(path: str) -> str:
    return quote(path, safe="/")


def build_github_readme_url(full_name: str, reference: ReadmeRef) -> str:
    """Build `https://raw.githubusercontent.com/{full_name}/{branch}/{path}`."""
    return (
        f"{GITHUB_RAW_BASE}/{full_name}/"
        f"{_quote_path(reference.branch)}/{_quote_path(reference.path)}"
    )


def build_gitlab_readme_url(full_name: str, reference: ReadmeRef) -> str:
    """Build `https://gitlab.com/{full_name}/-/raw/{branch}/{path}?ref_type=heads`."""
    return (
        f"{GITLAB_BASE}/{full_name}/-/raw/"
        f"{_quote_path(reference.branch)}/{_quote_path(reference.path)}?ref_type=heads"
    )


class ReadmeFetcher(ABC):
    """Fetches and normalizes README documents from one hosting service."""

    source: str = ""

    @abstractmethod
    def build_url(self, repo: Repository) -> str:
        """Return the raw-content URL of the repository's README."""

    async def fetch(self, client: "AsyncStoreClient", repo: Repository) -> List[str]:
        """
        Download the README and run it through the README processor.

        Raises:
            NetworkError: If the request fails or returns a non-2xx status.
        """
        url = self.build_url(repo)
        logger.debug(f"Fetching README: {repo.full_name} ({url})")
        body = await client.get_text(url)
        lines = process_readme_content(body)
        logger.debug(f"README fetched: {repo.full_name} ({len(lines)} lines)")
        return lines


class GitHubFetcher(ReadmeFetcher):
    source = SOURCE_GITHUB

    def build_url(self, repo: Repository) -> str:
        return build_github_readme_url(
            validate_full_name(repo.full_name), repo.readme_ref
        )


class GitLabFetcher(ReadmeFetcher):
    source = SOURCE_GITLAB

    def build_url(self, repo: Repository) -> str:
        return build_gitlab_readme_url(
            validate_full_name(repo.full_name), repo.readme_ref
        )


_FETCHERS: Dict[str, ReadmeFetcher] = {
    SOURCE_GITHUB: GitHubFetcher(),
    SOURCE_GITLAB: GitLabFetcher(),
}


def fetcher_for(repo: Repository) -> ReadmeFetcher:
    """
    Select the README fetcher for a repository's source.

    Raises:
        ValidationError: If the source is not one of the supported hosting services.
    """
    source = (repo.source or SOURCE_GITHUB).lower()
    try:
        return _FETCHERS[source]
    except KeyError:
        raise ValidationError(
            f"Unsupported repository source '{repo.source}'",
            field="source",
            value=repo.source,
        ) from None
