"""
File operations for the Plugstore cache directory.

Writes go to a temporary file in the destination directory and are moved into
place with os.replace, so readers never observe a partially written cache
file.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from plugstore.exceptions import CacheIOError
from plugstore.log_utils import logger

from .interfaces import Pathish


def _temp_path_for(target: Path) -> Path:
    fd, temp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix="tmp-", suffix=target.suffix or ".tmp"
    )
    os.close(fd)
    return Path(temp_name)


def _discard(temp_path: Path) -> None:
    if temp_path.exists():
        try:
            temp_path.unlink()
        except OSError:
            pass


def atomic_write_bytes(file_path: Pathish, data: bytes) -> None:
    """
    Atomically write `data` to `file_path`, creating the parent directory if needed.

    Raises:
        CacheIOError: If the directory cannot be created or the file cannot be written.
    """
    target = Path(file_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path = _temp_path_for(target)
    except OSError as e:
        raise CacheIOError(
            f"Could not prepare cache file {target}", path=str(target), details=str(e)
        ) from e

    try:
        with open(temp_path, "wb") as f:
            f.write(data)
        os.replace(temp_path, target)
    except OSError as e:
        raise CacheIOError(
            f"Could not write {target}", path=str(target), details=str(e)
        ) from e
    finally:
        _discard(temp_path)


async def async_atomic_write_bytes(
    file_path: Pathish, data: bytes, commit: Optional[Callable[[], bool]] = None
) -> bool:
    """
    Asynchronous counterpart of atomic_write_bytes() using aiofiles.

    The data is written to a temporary file off the event loop; the final
    os.replace runs on the loop thread, and only if `commit()` (when given)
    still returns True at that point.

    Returns:
        bool: True if the file was replaced, False if `commit()` declined.

    Raises:
        CacheIOError: If the directory cannot be created or the file cannot be written.
    """
    target = Path(file_path)
    try:
        await aiofiles.os.makedirs(str(target.parent), exist_ok=True)
        temp_path = _temp_path_for(target)
    except OSError as e:
        raise CacheIOError(
            f"Could not prepare cache file {target}", path=str(target), details=str(e)
        ) from e

    try:
        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(data)
        if commit is not None and not commit():
            return False
        os.replace(temp_path, target)
        return True
    except OSError as e:
        raise CacheIOError(
            f"Could not write {target}", path=str(target), details=str(e)
        ) from e
    finally:
        _discard(temp_path)


def read_bytes(file_path: Pathish) -> bytes:
    """
    Read a cache file.

    Raises:
        CacheIOError: If the file cannot be read.
    """
    try:
        with open(file_path, "rb") as f:
            return f.read()
    except OSError as e:
        raise CacheIOError(
            f"Could not read {file_path}", path=str(file_path), details=str(e)
        ) from e


def file_size(file_path: Pathish) -> int:
    """
    Return the size of a file in bytes.

    Raises:
        CacheIOError: If the file cannot be stat'ed.
    """
    try:
        return os.stat(file_path).st_size
    except OSError as e:
        raise CacheIOError(
            f"Could not stat {file_path}", path=str(file_path), details=str(e)
        ) from e


def reset_directory(dir_path: Pathish) -> None:
    """
    Delete a directory tree and recreate it empty.

    Raises:
        CacheIOError: If the directory cannot be removed or recreated.
    """
    target = Path(dir_path)
    if target.exists():
        try:
            shutil.rmtree(target)
        except OSError as e:
            raise CacheIOError(
                "Failed to delete cache directory", path=str(target), details=str(e)
            ) from e
        logger.debug(f"Removed cache directory {target}")

    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CacheIOError(
            "Failed to recreate cache directory", path=str(target), details=str(e)
        ) from e
