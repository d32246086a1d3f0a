"""Reading the editor's plugin lock file."""

import json
from pathlib import Path
from typing import Set

from plugstore.exceptions import CacheIOError, ParseError
from plugstore.log_utils import logger

from .interfaces import Pathish


def read_installed_plugins(lock_file: Pathish) -> Set[str]:
    """
    Return the names of installed plugins listed in a lock file.

    The lock file is a JSON object whose keys are plugin names. A missing file
    means nothing is installed.

    Raises:
        CacheIOError: If the file exists but cannot be read.
        ParseError: If the file is not a JSON object.
    """
    path = Path(lock_file)
    if not path.is_file():
        logger.debug(f"Lock file not found at: {path}")
        return set()

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CacheIOError(
            f"Failed to read {path.name}", path=str(path), details=str(e)
        ) from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse {path.name}", details=str(e)) from e
    if not isinstance(data, dict):
        raise ParseError(
            f"Failed to parse {path.name}",
            details=f"expected object, got {type(data).__name__}",
        )

    installed = {str(name) for name in data}
    logger.debug(f"Found {len(installed)} installed plugins")
    return installed
