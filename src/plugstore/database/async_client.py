"""
Async HTTP Client for Plugstore

This module provides the asynchronous HTTP operations used by the database
layer, built on aiohttp with lazy session management and uniform error
wrapping:

- JSON GETs for the repository index and install catalogues
- HEAD requests that report a resource's declared Content-Length
- Plain text GETs for raw README content
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout, TCPConnector

from plugstore.config import StoreConfig
from plugstore.constants import GET_REQUEST_TIMEOUT, HEAD_REQUEST_TIMEOUT
from plugstore.exceptions import NetworkError, ParseError
from plugstore.log_utils import logger
from plugstore.utils import (
    get_user_agent,
    is_success_status,
    parse_content_length,
    preview_body,
)

from .interfaces import Database, FetchedDocument, Repository, validate_manager
from .sources import fetcher_for


class AsyncStoreClient:
    """
    Asynchronous client for the remote sources Plugstore reads from.

    Example:
        async with AsyncStoreClient(config) as client:
            document = await client.fetch_index()
            database = document.value
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        timeout: float = GET_REQUEST_TIMEOUT,
        head_timeout: float = HEAD_REQUEST_TIMEOUT,
        connector_limit: int = 10,
    ) -> None:
        """
        Initialize the client.

        Parameters:
            config (Optional[StoreConfig]): Source URLs; defaults are used when omitted.
            timeout (float): Total timeout in seconds for GET requests.
            head_timeout (float): Total timeout in seconds for HEAD requests.
            connector_limit (int): Maximum total connections in the pool.
        """
        self.config = config or StoreConfig()
        self.timeout = ClientTimeout(total=timeout)
        self.head_timeout = ClientTimeout(total=head_timeout)
        self.connector_limit = max(1, int(connector_limit))
        self._session: Optional[ClientSession] = None
        self._closed: bool = False

    async def __aenter__(self) -> "AsyncStoreClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> ClientSession:
        """
        Ensure a session exists, creating one if needed.

        Returns:
            ClientSession: The active aiohttp session.
        """
        if self._session is None or self._session.closed:
            connector = TCPConnector(
                limit=self.connector_limit,
                enable_cleanup_closed=True,
            )
            self._session = ClientSession(connector=connector, timeout=self.timeout)
            self._closed = False
        return self._session

    async def close(self) -> None:
        """Close the client session and release resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._closed = True

    @staticmethod
    def _json_headers() -> Dict[str, str]:
        # HEAD validation compares Content-Length with the cached file size,
        # so both requests must see the uncompressed representation.
        return {
            "Accept": "application/json",
            "Accept-Encoding": "identity",
            "User-Agent": get_user_agent(),
        }

    async def _get(self, url: str, headers: Optional[Dict[str, str]] = None) -> bytes:
        """
        Issue a GET request and return the response body.

        Raises:
            NetworkError: On non-2xx status, timeout, or connection failure.
        """
        session = await self._ensure_session()
        try:
            async with session.get(
                url, headers=headers, timeout=self.timeout
            ) as response:
                body = await response.read()
                if not is_success_status(response.status):
                    text = body.decode("utf-8", errors="replace")
                    raise NetworkError(
                        f"HTTP {response.status} fetching {url}",
                        url=url,
                        status_code=response.status,
                        body=text,
                        details=preview_body(text) or None,
                    )
                return body
        except asyncio.TimeoutError as e:
            logger.error(f"Timed out fetching {url}")
            raise NetworkError(f"Request timed out: {url}", url=url) from e
        except aiohttp.ClientError as e:
            logger.error(f"Network error fetching {url}: {e}")
            raise NetworkError(
                f"Network error fetching {url}", url=url, details=str(e)
            ) from e

    async def head_content_length(self, url: str) -> int:
        """
        Issue a HEAD request and return the declared Content-Length.

        Parameters:
            url (str): Resource to check.

        Returns:
            int: The Content-Length advertised by the server.

        Raises:
            NetworkError: On non-2xx status, timeout, connection failure, or a missing Content-Length header.
        """
        session = await self._ensure_session()
        logger.debug(f"HEAD request to check size: {url}")
        try:
            async with session.head(
                url,
                headers=self._json_headers(),
                timeout=self.head_timeout,
                allow_redirects=True,
            ) as response:
                if not is_success_status(response.status):
                    raise NetworkError(
                        f"Failed to HEAD check: HTTP {response.status}",
                        url=url,
                        status_code=response.status,
                    )
                content_length = parse_content_length(response.headers)
        except asyncio.TimeoutError as e:
            raise NetworkError(f"HEAD request timed out: {url}", url=url) from e
        except aiohttp.ClientError as e:
            raise NetworkError(
                f"HEAD request failed: {url}", url=url, details=str(e)
            ) from e

        if content_length is None:
            raise NetworkError(
                "No content-length header found in HEAD response", url=url
            )
        logger.debug(f"Content length for {url}: {content_length} bytes")
        return content_length

    async def fetch_json(self, url: str) -> FetchedDocument:
        """
        GET a JSON document.

        Returns:
            FetchedDocument: The decoded value and the raw body bytes.

        Raises:
            NetworkError: If the request fails.
            ParseError: If the body is not valid JSON.
        """
        body = await self._get(url, headers=self._json_headers())
        try:
            value = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(
                f"Failed to parse JSON from {url}", url=url, details=str(e)
            ) from e
        return FetchedDocument(value=value, raw=body)

    async def get_text(self, url: str) -> str:
        """GET a resource without extra headers and decode it as UTF-8."""
        body = await self._get(url)
        return body.decode("utf-8", errors="replace")

    async def fetch_index(self) -> FetchedDocument:
        """
        Fetch the repository index.

        Returns:
            FetchedDocument: `value` is a Database; `raw` the bytes received.

        Raises:
            NetworkError: If the request fails.
            ParseError: If the body is not a valid index document.
        """
        url = self.config.data_source_url
        logger.info(f"Fetching repository index: {url}")
        document = await self.fetch_json(url)
        database = Database.from_dict(document.value, origin=url)
        return FetchedDocument(value=database, raw=document.raw)

    async def head_index_length(self) -> int:
        """Return the Content-Length the index URL currently advertises."""
        return await self.head_content_length(self.config.data_source_url)

    def catalogue_url(self, manager: str) -> str:
        return self.config.catalogue_url(validate_manager(manager))

    async def fetch_install_catalogue(self, manager: str) -> FetchedDocument:
        """
        Fetch the install catalogue of a plugin manager.

        Raises:
            ValidationError: If the manager is not supported.
            NetworkError: If the request fails.
            ParseError: If the body is not valid JSON.
        """
        url = self.catalogue_url(manager)
        logger.info(f"Fetching {manager} install catalogue: {url}")
        return await self.fetch_json(url)

    async def fetch_readme(self, repo: Repository) -> List[str]:
        """
        Fetch and process a repository README from its hosting service.

        Raises:
            ValidationError: If the repository source is unsupported.
            NetworkError: If the request fails.
        """
        return await fetcher_for(repo).fetch(self, repo)
