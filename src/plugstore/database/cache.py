"""
Cache Management for the Plugstore Database Layer

Two tiers back every cached artifact:

- a memory tier owned by the CacheStore instance, living as long as the
  instance (no expiry), and
- a file tier inside the cache directory, the durable copy across restarts.

Lookups are synchronous. Persistence is best-effort: the memory tier is
updated immediately and the disk write is scheduled on the running event loop;
write failures are logged, never raised. Clearing the caches is the one
destructive operation and it reports failures.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from plugstore.config import get_default_cache_dir
from plugstore.constants import (
    CATALOGUE_CACHE_SUFFIX,
    DATABASE_CACHE_FILE,
    README_CACHE_SUFFIX,
)
from plugstore.exceptions import (
    CacheIOError,
    ParseError,
    PlugstoreError,
    ValidationError,
)
from plugstore.log_utils import logger

from .files import (
    async_atomic_write_bytes,
    atomic_write_bytes,
    file_size,
    read_bytes,
    reset_directory,
)
from .interfaces import (
    CacheLookup,
    CacheTier,
    Database,
    Pathish,
    validate_full_name,
    validate_manager,
)
from .readme import lines_to_text, text_to_lines


def repository_to_readme_key(full_name: str) -> str:
    """Return the README cache filename for "owner/repo": `owner-repo.md`."""
    return full_name.replace("/", "-") + README_CACHE_SUFFIX


def manager_to_catalogue_key(manager: str) -> str:
    """Return the install catalogue cache filename for a plugin manager."""
    return manager + CATALOGUE_CACHE_SUFFIX


def _encode_json(value: Any) -> bytes:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode(
        "utf-8"
    )


class CacheStore:
    """
    Two-tier cache for the repository index, README documents and install catalogues.

    A CacheStore owns its memory maps; create one per process (or per test) and
    hand it to the DatabaseFacade. Call flush() before discarding it so that
    scheduled disk writes complete.
    """

    def __init__(self, cache_dir: Optional[Pathish] = None) -> None:
        """
        Parameters:
            cache_dir (Optional[Pathish]): Directory for the file tier. Defaults to the platform user cache directory for "plugstore".
        """
        self.cache_dir = Path(cache_dir) if cache_dir else get_default_cache_dir()
        self._database: Optional[Database] = None
        self._readmes: Dict[str, List[str]] = {}
        self._catalogues: Dict[str, Any] = {}
        self._pending_writes: Set["asyncio.Task[None]"] = set()
        self._generation = 0

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def database_path(self) -> Path:
        return self.cache_dir / DATABASE_CACHE_FILE

    def readme_path(self, full_name: str) -> Path:
        return self.cache_dir / repository_to_readme_key(validate_full_name(full_name))

    def catalogue_path(self, manager: str) -> Path:
        return self.cache_dir / manager_to_catalogue_key(validate_manager(manager))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    async def _write(
        self, path: Path, data: bytes, label: str, generation: int
    ) -> None:
        try:
            written = await async_atomic_write_bytes(
                path, data, commit=lambda: generation == self._generation
            )
        except CacheIOError as e:
            logger.error(f"Failed to save {label} cache: {e}")
            return
        if not written:
            logger.debug(f"Dropped {label} cache write scheduled before a clear")
            return
        logger.debug(f"Saved {label} cache to {path}")

    def _schedule_write(self, path: Path, data: bytes, label: str) -> None:
        """Persist `data` on the running loop, or synchronously when there is none."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                atomic_write_bytes(path, data)
            except CacheIOError as e:
                logger.error(f"Failed to save {label} cache: {e}")
            return

        task = loop.create_task(self._write(path, data, label, self._generation))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def flush(self) -> None:
        """Wait for every scheduled disk write to finish."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    def _cancel_pending_writes(self) -> None:
        """
        Cancel scheduled writes and invalidate any already past the point of
        cancellation, so none of them commits into a cleared directory.
        """
        self._generation += 1
        for task in list(self._pending_writes):
            task.cancel()
        self._pending_writes.clear()

    def _read_file(self, path: Path, label: str) -> Optional[bytes]:
        if not path.exists():
            logger.debug(f"{label} cache miss")
            return None
        try:
            return read_bytes(path)
        except CacheIOError as e:
            logger.warning(f"Ignoring unreadable {label} cache: {e}")
            return None

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    def get_database(self) -> CacheLookup:
        """
        Look up the cached repository index.

        Returns:
            CacheLookup: tier MEMORY or FILE with the Database, or tier NONE when
            nothing usable is cached. A corrupt file counts as a miss.
        """
        if self._database is not None:
            logger.debug("Database cache hit (memory)")
            return CacheLookup(CacheTier.MEMORY, self._database)

        path = self.database_path()
        raw = self._read_file(path, "Database")
        if raw is None:
            return CacheLookup(CacheTier.NONE)

        try:
            database = Database.from_dict(
                json.loads(raw.decode("utf-8")), origin=str(path)
            )
        except (UnicodeDecodeError, json.JSONDecodeError, ParseError) as e:
            logger.warning(f"Ignoring corrupt database cache {path}: {e}")
            return CacheLookup(CacheTier.NONE)

        self._database = database
        logger.debug("Database cache hit (file)")
        return CacheLookup(CacheTier.FILE, database)

    def save_database(self, database: Database, raw: Optional[bytes] = None) -> None:
        """
        Store the repository index in both tiers.

        Parameters:
            database (Database): The snapshot to cache.
            raw (Optional[bytes]): Exact bytes received from the network; written
                verbatim so the file size matches the server's Content-Length.

        Raises:
            ValidationError: If `database` is not a Database.
        """
        if not isinstance(database, Database):
            raise ValidationError(
                "database must be a Database instance",
                field="database",
                value=type(database).__name__,
            )
        self._database = database
        data = raw if raw is not None else _encode_json(database.to_dict())
        self._schedule_write(self.database_path(), data, "database")

    def database_file_size(self) -> int:
        """Size in bytes of the database cache file; raises CacheIOError if absent."""
        return file_size(self.database_path())

    # ------------------------------------------------------------------
    # READMEs
    # ------------------------------------------------------------------

    def get_readme(self, full_name: str) -> CacheLookup:
        """
        Look up cached README lines for "owner/repo".

        Raises:
            ValidationError: If `full_name` is not an "owner/repo" string.
        """
        validate_full_name(full_name)
        lines = self._readmes.get(full_name)
        if lines is not None:
            logger.debug(f"Cache hit (memory): {full_name}")
            return CacheLookup(CacheTier.MEMORY, lines)

        raw = self._read_file(self.readme_path(full_name), f"README {full_name}")
        if raw is None:
            return CacheLookup(CacheTier.NONE)

        lines = text_to_lines(raw.decode("utf-8", errors="replace"))
        self._readmes[full_name] = lines
        logger.debug(f"Cache hit (file): {full_name}")
        return CacheLookup(CacheTier.FILE, lines)

    def save_readme(self, full_name: str, lines: List[str]) -> None:
        """
        Store processed README lines in both tiers.

        Raises:
            ValidationError: If `full_name` is malformed or `lines` is not a list of strings.
        """
        validate_full_name(full_name)
        if not isinstance(lines, list) or not all(isinstance(x, str) for x in lines):
            raise ValidationError(
                "content must be a list of strings", field="lines", value=lines
            )
        self._readmes[full_name] = lines
        self._schedule_write(
            self.readme_path(full_name),
            lines_to_text(lines).encode("utf-8"),
            f"README {full_name}",
        )

    # ------------------------------------------------------------------
    # Install catalogues
    # ------------------------------------------------------------------

    def get_install_catalogue(self, manager: str) -> CacheLookup:
        """
        Look up the cached install catalogue of a plugin manager.

        Raises:
            ValidationError: If the manager is not supported.
        """
        validate_manager(manager)
        if manager in self._catalogues:
            logger.debug(f"Install catalogue cache hit (memory): {manager}")
            return CacheLookup(CacheTier.MEMORY, self._catalogues[manager])

        path = self.catalogue_path(manager)
        raw = self._read_file(path, f"Install catalogue {manager}")
        if raw is None:
            return CacheLookup(CacheTier.NONE)

        try:
            value = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring corrupt install catalogue cache {path}: {e}")
            return CacheLookup(CacheTier.NONE)

        self._catalogues[manager] = value
        logger.debug(f"Install catalogue cache hit (file): {manager}")
        return CacheLookup(CacheTier.FILE, value)

    def save_install_catalogue(
        self, manager: str, value: Any, raw: Optional[bytes] = None
    ) -> None:
        """
        Store an install catalogue in both tiers.

        Raises:
            ValidationError: If the manager is not supported.
        """
        validate_manager(manager)
        self._catalogues[manager] = value
        data = raw if raw is not None else _encode_json(value)
        self._schedule_write(
            self.catalogue_path(manager), data, f"install catalogue {manager}"
        )

    def catalogue_file_size(self, manager: str) -> int:
        """Size in bytes of a catalogue cache file; raises CacheIOError if absent."""
        return file_size(self.catalogue_path(manager))

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def clear_memory(self) -> None:
        """Empty all memory maps."""
        self._database = None
        self._readmes = {}
        self._catalogues = {}

    def clear_files(self) -> None:
        """
        Delete and recreate the cache directory.

        Scheduled writes that have not committed yet are dropped so they do
        not repopulate the directory.

        Raises:
            CacheIOError: If the directory cannot be deleted or recreated.
        """
        self._cancel_pending_writes()
        reset_directory(self.cache_dir)

    def clear_all(self) -> Optional[PlugstoreError]:
        """
        Clear both tiers.

        Returns:
            Optional[PlugstoreError]: The first error encountered, or None on success.
        """
        logger.debug("Clearing all caches")
        self.clear_memory()
        try:
            self.clear_files()
        except CacheIOError as e:
            return e
        logger.info("Cache cleared")
        return None
