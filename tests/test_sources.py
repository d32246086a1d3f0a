"""Tests for README URL building and source dispatch."""

from unittest.mock import AsyncMock

import pytest

from plugstore.database.interfaces import ReadmeRef, Repository
from plugstore.database.sources import (
    GitHubFetcher,
    GitLabFetcher,
    build_github_readme_url,
    build_gitlab_readme_url,
    fetcher_for,
)
from plugstore.exceptions import NetworkError, ValidationError

pytestmark = [pytest.mark.unit, pytest.mark.network]


class TestReadmeRef:
    @pytest.mark.parametrize(
        "reference,branch,path",
        [
            (None, "HEAD", "README.md"),
            ("", "HEAD", "README.md"),
            ("main", "HEAD", "README.md"),
            ("/README.md", "HEAD", "README.md"),
            ("main/", "HEAD", "README.md"),
            ("main/README.md", "main", "README.md"),
            ("dev/docs/nested/README.markdown", "dev", "docs/nested/README.markdown"),
            (42, "HEAD", "README.md"),
        ],
    )
    def test_parse(self, reference, branch, path):
        ref = ReadmeRef.parse(reference)
        assert (ref.branch, ref.path) == (branch, path)


class TestUrlBuilding:
    def test_github_default(self):
        url = build_github_readme_url("folke/lazy.nvim", ReadmeRef())
        assert url == "https://raw.githubusercontent.com/folke/lazy.nvim/HEAD/README.md"

    def test_github_with_reference(self):
        repo = Repository(full_name="owner/repo", readme="master/doc/README.md")
        assert GitHubFetcher().build_url(repo) == (
            "https://raw.githubusercontent.com/owner/repo/master/doc/README.md"
        )

    def test_gitlab_dialect(self):
        url = build_gitlab_readme_url("group/project", ReadmeRef("main", "README.md"))
        assert url == (
            "https://gitlab.com/group/project/-/raw/main/README.md?ref_type=heads"
        )

    def test_gitlab_fetcher_defaults(self):
        repo = Repository(full_name="group/project", source="gitlab")
        assert GitLabFetcher().build_url(repo) == (
            "https://gitlab.com/group/project/-/raw/HEAD/README.md?ref_type=heads"
        )


class TestFetcherFor:
    def test_github_is_default(self):
        assert isinstance(fetcher_for(Repository(full_name="a/b")), GitHubFetcher)

    def test_gitlab_selected_by_source(self):
        repo = Repository(full_name="a/b", source="gitlab")
        assert isinstance(fetcher_for(repo), GitLabFetcher)

    def test_source_is_case_insensitive(self):
        repo = Repository(full_name="a/b", source="GitLab")
        assert isinstance(fetcher_for(repo), GitLabFetcher)

    def test_unknown_source_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            fetcher_for(Repository(full_name="a/b", source="bitbucket"))
        assert exc_info.value.field == "source"


@pytest.mark.asyncio
class TestReadmeFetch:
    async def test_fetch_processes_body(self, mocker):
        client = mocker.MagicMock()
        client.get_text = AsyncMock(return_value="\n\n# Hi\n\n\n<b>there</b>\n")
        repo = Repository(full_name="owner/repo")

        lines = await GitHubFetcher().fetch(client, repo)

        assert lines == ["# Hi", "", "there"]
        client.get_text.assert_awaited_once_with(
            "https://raw.githubusercontent.com/owner/repo/HEAD/README.md"
        )

    async def test_fetch_propagates_network_errors(self, mocker):
        client = mocker.MagicMock()
        client.get_text = AsyncMock(
            side_effect=NetworkError("HTTP 404", status_code=404, body="Not Found")
        )

        with pytest.raises(NetworkError) as exc_info:
            await GitLabFetcher().fetch(client, Repository(full_name="g/p", source="gitlab"))
        assert exc_info.value.status_code == 404
