"""
Database Facade

Coordinates the cache store and the remote source clients. For every request
the cache tier decides what happens next:

- memory: answer immediately.
- none: fetch from the network, write through the cache, answer.
- file: for the index and install catalogues, compare the server's
  Content-Length (HEAD) against the cached file size and refetch only when
  they differ. README files are trusted as-is.

Failing to validate a cached artifact never fails the request; the cached
value is served instead.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, List, Optional, Set, TypeVar, Union

from plugstore.config import StoreConfig
from plugstore.exceptions import CacheIOError, NetworkError, PlugstoreError
from plugstore.log_utils import logger
from plugstore.utils import format_duration_ms

from .async_client import AsyncStoreClient
from .cache import CacheStore
from .installed import read_installed_plugins
from .interfaces import (
    CacheLookup,
    CacheTier,
    Database,
    FetchedDocument,
    Repository,
    validate_manager,
)
from .sources import fetcher_for

T = TypeVar("T")
ResultCallback = Callable[[Optional[Any], Optional[PlugstoreError]], None]


class DatabaseFacade:
    """
    Single entry point for the presentation layer.

    Owns (or borrows) a CacheStore and an AsyncStoreClient. Every coroutine
    either returns a value or raises a PlugstoreError; the *_with_callback
    variants adapt that to `callback(data, error)` invoked exactly once.
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        cache: Optional[CacheStore] = None,
        client: Optional[AsyncStoreClient] = None,
    ) -> None:
        self.config = config or StoreConfig()
        self.cache = cache or CacheStore(self.config.cache_dir)
        self.client = client or AsyncStoreClient(self.config)
        self._tasks: Set["asyncio.Task[None]"] = set()

    async def __aenter__(self) -> "DatabaseFacade":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Finish scheduled cache writes and close the HTTP session."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.cache.flush()
        await self.client.close()

    # ------------------------------------------------------------------
    # Validation of file-tier artifacts
    # ------------------------------------------------------------------

    async def _validated(
        self,
        label: str,
        lookup: CacheLookup,
        remote_length: Callable[[], Awaitable[int]],
        local_length: Callable[[], int],
        refetch: Callable[[], Awaitable[T]],
    ) -> T:
        """Serve a file-tier value if its size matches the remote Content-Length."""
        try:
            remote = await remote_length()
        except NetworkError as e:
            logger.warning(f"HEAD check failed for {label}, using cached copy: {e}")
            return lookup.value

        try:
            local = local_length()
        except CacheIOError as e:
            logger.warning(f"Could not stat cached {label}, using cached copy: {e}")
            return lookup.value

        if remote == local:
            logger.debug(f"Cached {label} is up to date ({local} bytes)")
            return lookup.value

        logger.info(
            f"Cached {label} is outdated ({local} bytes cached, {remote} remote); refreshing"
        )
        try:
            return await refetch()
        except NetworkError as e:
            logger.warning(f"Refreshing {label} failed, using cached copy: {e}")
            return lookup.value

    # ------------------------------------------------------------------
    # Repository index
    # ------------------------------------------------------------------

    async def _download_database(self) -> Database:
        document: FetchedDocument = await self.client.fetch_index()
        database: Database = document.value
        logger.info(f"Database loaded: {len(database.items)} plugins")
        self.cache.save_database(database, raw=document.raw)
        return database

    async def fetch_database(self, force_refresh: bool = False) -> Database:
        """
        Return the repository index, from cache when it is still current.

        Parameters:
            force_refresh (bool): Skip both cache tiers and fetch from the network.

        Raises:
            NetworkError: If no cached copy exists and the fetch fails (ParseError for invalid JSON).
        """
        logger.debug("fetch_database called")
        if force_refresh:
            return await self._download_database()

        lookup = self.cache.get_database()
        if lookup.tier is CacheTier.MEMORY:
            return lookup.value
        if lookup.tier is CacheTier.NONE:
            logger.debug("No cached database available, fetching from network")
            return await self._download_database()

        return await self._validated(
            "database",
            lookup,
            self.client.head_index_length,
            self.cache.database_file_size,
            self._download_database,
        )

    # ------------------------------------------------------------------
    # Install catalogues
    # ------------------------------------------------------------------

    async def _download_catalogue(self, manager: str) -> Any:
        document = await self.client.fetch_install_catalogue(manager)
        self.cache.save_install_catalogue(manager, document.value, raw=document.raw)
        return document.value

    async def fetch_install_catalogue(
        self, manager: str, force_refresh: bool = False
    ) -> Any:
        """
        Return the install catalogue of a plugin manager, validated like the index.

        Raises:
            ValidationError: If the manager is not supported.
            NetworkError: If no cached copy exists and the fetch fails.
        """
        validate_manager(manager)
        if force_refresh:
            return await self._download_catalogue(manager)

        lookup = self.cache.get_install_catalogue(manager)
        if lookup.tier is CacheTier.MEMORY:
            return lookup.value
        if lookup.tier is CacheTier.NONE:
            logger.debug(f"No cached {manager} catalogue, fetching from network")
            return await self._download_catalogue(manager)

        return await self._validated(
            f"{manager} catalogue",
            lookup,
            lambda: self.client.head_content_length(self.client.catalogue_url(manager)),
            lambda: self.cache.catalogue_file_size(manager),
            lambda: self._download_catalogue(manager),
        )

    # ------------------------------------------------------------------
    # READMEs
    # ------------------------------------------------------------------

    @staticmethod
    def _as_repository(repo: Union[Repository, dict]) -> Repository:
        if isinstance(repo, Repository):
            return repo
        return Repository.from_dict(repo)

    async def get_readme(
        self, repo: Union[Repository, dict], force_refresh: bool = False
    ) -> List[str]:
        """
        Return processed README lines for a repository.

        Cached READMEs (memory or file) are returned without revalidation; the
        GitHub or GitLab fetcher is chosen from `repo.source` otherwise.

        Raises:
            ValidationError: If the repository record is malformed or its source unsupported.
            NetworkError: If the README is not cached and cannot be fetched.
        """
        repository = self._as_repository(repo)
        logger.debug(f"get_readme called for {repository.full_name}")

        if not force_refresh:
            lookup = self.cache.get_readme(repository.full_name)
            if lookup.hit:
                return lookup.value

        logger.debug(f"Fetching README from network for {repository.full_name}")
        lines = await self.client.fetch_readme(repository)
        self.cache.save_readme(repository.full_name, lines)
        return lines

    # ------------------------------------------------------------------
    # Local state
    # ------------------------------------------------------------------

    def get_installed_plugins(self) -> Set[str]:
        """
        Return the names of installed plugins from the configured lock file.

        Raises:
            CacheIOError: If the lock file exists but cannot be read.
            ParseError: If the lock file is not a JSON object.
        """
        return read_installed_plugins(self.config.lock_file)

    def clear_all_caches(self) -> Optional[PlugstoreError]:
        """
        Empty the memory tier and reset the cache directory.

        Returns:
            Optional[PlugstoreError]: The error that stopped the reset, or None.
        """
        logger.debug("Starting database clear")
        start_time = time.perf_counter()
        error = self.cache.clear_all()
        duration = format_duration_ms(time.perf_counter() - start_time)

        if error:
            logger.error(f"Database reset failed: {error} (took {duration})")
            return error
        logger.info(f"Database reset completed in {duration}")
        return None

    # ------------------------------------------------------------------
    # Callback adapters
    # ------------------------------------------------------------------

    def _deliver(
        self, operation: Callable[[], Awaitable[Any]], callback: ResultCallback
    ) -> "asyncio.Task[None]":
        """
        Run `operation()` on the current loop and report its outcome to `callback` once.

        Raises:
            RuntimeError: If no event loop is running; `operation` is not called.
        """
        loop = asyncio.get_running_loop()

        async def runner() -> None:
            try:
                result = await operation()
            except PlugstoreError as e:
                callback(None, e)
                return
            except Exception as e:
                logger.exception(f"Unexpected error in database operation: {e}")
                callback(None, PlugstoreError("Unexpected error", details=str(e)))
                return
            callback(result, None)

        task = loop.create_task(runner())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def fetch_database_with_callback(
        self, callback: ResultCallback, force_refresh: bool = False
    ) -> "asyncio.Task[None]":
        """Schedule fetch_database(); must be called while an event loop is running."""
        return self._deliver(lambda: self.fetch_database(force_refresh), callback)

    def get_readme_with_callback(
        self,
        repo: Union[Repository, dict],
        callback: ResultCallback,
        force_refresh: bool = False,
    ) -> "asyncio.Task[None]":
        """
        Schedule get_readme().

        Raises:
            ValidationError: Synchronously, if the repository record is malformed or its source unsupported.
        """
        repository = self._as_repository(repo)
        fetcher_for(repository)
        return self._deliver(
            lambda: self.get_readme(repository, force_refresh), callback
        )

    def fetch_install_catalogue_with_callback(
        self, manager: str, callback: ResultCallback, force_refresh: bool = False
    ) -> "asyncio.Task[None]":
        """
        Schedule fetch_install_catalogue().

        Raises:
            ValidationError: Synchronously, if the manager is not supported.
        """
        validate_manager(manager)
        return self._deliver(
            lambda: self.fetch_install_catalogue(manager, force_refresh), callback
        )
