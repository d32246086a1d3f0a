import json
from pathlib import Path
from unittest.mock import AsyncMock

import aiohttp
import platformdirs
import pytest

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Mock aiohttp.ClientSession."
)

_AIOHTTP_SESSION_METHODS = {
    name: getattr(aiohttp.ClientSession, name) for name in ("request", "get", "head")
}


async def _async_block_network(*_args, **_kwargs):
    """
    Prevent async network calls during tests by raising a RuntimeError.

    Raises:
        RuntimeError: `_ASYNC_NETWORK_BLOCK_MSG` explaining that async network access is blocked.
    """
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


pytest_plugins = ("pytest_asyncio",)


def pytest_configure(config):
    """Register the markers used across the suite."""
    for marker in (
        "asyncio: mark test as an asyncio test",
        "unit: fast isolated tests",
        "cache: cache store behaviour",
        "network: remote source clients (mocked)",
        "readme: README processing",
    ):
        config.addinivalue_line("markers", marker)


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point every platformdirs location at a temporary directory tree.

    Also clears PLUGSTORE_LOG_LEVEL so configuration tests start from defaults.
    """
    base = tmp_path_factory.mktemp("plugstore")
    cache_dir = base / "cache"
    config_dir = base / "config"
    log_dir = base / "log"

    for path in (cache_dir, config_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.delenv("PLUGSTORE_LOG_LEVEL", raising=False)
    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs,
        "user_config_dir",
        lambda appname=None, *_args, **_kwargs: str(config_dir / (appname or "")),
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )


@pytest.hookimpl(tryfirst=True)
def pytest_runtest_setup():
    """Replace aiohttp's HTTP entry points with a blocker so no test reaches the network."""
    aiohttp.request = _async_block_network
    aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.head = _async_block_network  # type: ignore[assignment]


# =============================================================================
# Async HTTP fixtures
# =============================================================================


@pytest.fixture
def mock_aiohttp_session(mocker):
    """Provide a MagicMock shaped like aiohttp.ClientSession with `closed` set to False."""
    import aiohttp

    mock_session = mocker.MagicMock(spec=aiohttp.ClientSession)
    mock_session.closed = False
    mock_session.close = AsyncMock()
    return mock_session


@pytest.fixture
def mock_async_response(mocker):
    """
    Provide a factory for mocked aiohttp responses usable as `async with` targets.

    The factory returns `(context, response)`: assign `context` as the return
    value of a mocked `session.get`/`session.head`; `response` exposes
    `status`, `headers` and an async `read()`.
    """

    def _create_response(status=200, headers=None, body=b""):
        response = mocker.MagicMock()
        response.status = status
        response.headers = headers if headers is not None else {}
        response.read = AsyncMock(return_value=body)

        context = mocker.MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        return context, response

    return _create_response


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def sample_database_payload():
    """A small repository index as served by the data source."""
    return {
        "items": [
            {
                "full_name": "folke/lazy.nvim",
                "source": "github",
                "description": "A modern plugin manager for Neovim",
                "tags": ["plugin-manager"],
                "stars": 15000,
                "pretty": {"stars": "15k", "issues": "10"},
            },
            {
                "full_name": "group/gitlab-plugin",
                "source": "gitlab",
                "readme": "main/docs/README.md",
                "description": "Hosted on GitLab",
            },
        ],
        "meta": {
            "total_count": 2,
            "installable_count": 1,
            "max_full_name_length": 19,
            "max_pretty_stargazers_length": 3,
            "max_pretty_forks_length": 1,
            "max_pretty_issues_length": 2,
            "max_pretty_pushed_at_length": 8,
        },
    }


@pytest.fixture
def sample_database_raw(sample_database_payload):
    """Serialized index bytes, as received over the wire."""
    return json.dumps(sample_database_payload, indent=2).encode("utf-8")


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    path = tmp_path / "store-cache"
    path.mkdir()
    return path


@pytest.fixture
def store_config(cache_dir, tmp_path):
    from plugstore.config import StoreConfig

    return StoreConfig(
        data_source_url="https://example.com/db.json",
        install_catalogue_urls={
            "lazy.nvim": "https://example.com/lazy.nvim.json",
            "vim.pack": "https://example.com/vim.pack.json",
        },
        cache_dir=cache_dir,
        lock_file=tmp_path / "lazy-lock.json",
    )


@pytest.fixture
def loopback_network(monkeypatch):
    """
    Undo the network blocker for a test that talks to a local aiohttp TestServer.

    Only ClientSession is restored; the test is responsible for pointing it at
    the loopback server.
    """
    for name, method in _AIOHTTP_SESSION_METHODS.items():
        monkeypatch.setattr(aiohttp.ClientSession, name, method)
