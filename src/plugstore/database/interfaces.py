"""
Core data structures for the Plugstore database layer.

The repository index, its entries and cache lookup results are modelled here.
Instances are treated as immutable snapshots: a refresh replaces them
wholesale rather than mutating them.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from plugstore.constants import (
    DEFAULT_README_BRANCH,
    DEFAULT_README_PATH,
    DEFAULT_SOURCE,
    SUPPORTED_MANAGERS,
)
from plugstore.exceptions import ParseError, ValidationError
from plugstore.log_utils import logger

Pathish = Union[str, Path]

FULL_NAME_PATTERN = re.compile(r"^[^/\s]+/[^/\s]+$")


def validate_full_name(full_name: Any) -> str:
    """
    Ensure `full_name` is an "owner/repo" string.

    Raises:
        ValidationError: If the value is not a string of exactly two non-empty segments.
    """
    if not isinstance(full_name, str) or not FULL_NAME_PATTERN.match(full_name):
        raise ValidationError(
            "Invalid repository full_name. Expected 'owner/repo'",
            field="full_name",
            value=full_name,
        )
    return full_name


def validate_manager(manager: Any) -> str:
    """
    Ensure `manager` names a supported plugin manager.

    Raises:
        ValidationError: If the manager is not in SUPPORTED_MANAGERS.
    """
    if manager not in SUPPORTED_MANAGERS:
        raise ValidationError(
            f"Unsupported plugin manager '{manager}'",
            field="manager",
            value=manager,
            details=f"supported: {', '.join(SUPPORTED_MANAGERS)}",
        )
    return manager


class CacheTier(str, Enum):
    """Which cache layer satisfied a lookup."""

    MEMORY = "memory"
    FILE = "file"
    NONE = "none"


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache read: the tier that answered and the cached value."""

    tier: CacheTier
    value: Any = None

    @property
    def hit(self) -> bool:
        return self.tier is not CacheTier.NONE


@dataclass(frozen=True)
class ReadmeRef:
    """Location of a README inside a repository."""

    branch: str = DEFAULT_README_BRANCH
    path: str = DEFAULT_README_PATH

    @classmethod
    def parse(cls, reference: Optional[str]) -> "ReadmeRef":
        """
        Parse a "branch/path" reference.

        The first segment is the branch, the remainder (which may contain further
        slashes) is the path. Missing or malformed references fall back to
        HEAD/README.md.
        """
        if not isinstance(reference, str):
            return cls()
        branch, sep, path = reference.strip().partition("/")
        if not sep or not branch or not path:
            return cls()
        return cls(branch=branch, path=path)


@dataclass(frozen=True)
class Repository:
    """A single entry of the repository index."""

    full_name: str
    """Unique "owner/repo" key, also the README cache key"""

    source: str = DEFAULT_SOURCE
    """Hosting service the README is fetched from (github or gitlab)"""

    readme: Optional[str] = None
    """Optional "branch/path" README reference"""

    data: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    """Complete record as received, including display and install metadata"""

    @property
    def readme_ref(self) -> ReadmeRef:
        return ReadmeRef.parse(self.readme)

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> "Repository":
        """
        Build a Repository from an index record.

        Raises:
            ValidationError: If the record is not a mapping or lacks a valid full_name.
        """
        if not isinstance(item, dict):
            raise ValidationError(
                "Repository record must be an object", value=type(item).__name__
            )
        full_name = validate_full_name(item.get("full_name"))
        source = item.get("source") or DEFAULT_SOURCE
        if not isinstance(source, str):
            source = DEFAULT_SOURCE
        readme = item.get("readme")
        if not isinstance(readme, str):
            readme = None
        return cls(
            full_name=full_name,
            source=source.lower(),
            readme=readme,
            data=dict(item),
        )


@dataclass(frozen=True)
class Database:
    """The repository index snapshot: `items` plus layout/count `meta`."""

    items: List[Repository] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_count(self) -> int:
        value = self.meta.get("total_count")
        return value if isinstance(value, int) else len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [repo.data or {"full_name": repo.full_name} for repo in self.items],
            "meta": dict(self.meta),
        }

    @classmethod
    def from_dict(cls, payload: Any, origin: str = "payload") -> "Database":
        """
        Build a Database from decoded index JSON.

        Malformed entries are skipped with a warning; a payload without an
        `items` list is rejected.

        Raises:
            ParseError: If the payload is not an object with an `items` list.
        """
        if not isinstance(payload, dict):
            raise ParseError(
                f"Unexpected database payload from {origin}",
                details=f"expected object, got {type(payload).__name__}",
            )
        raw_items = payload.get("items")
        if not isinstance(raw_items, list):
            raise ParseError(
                f"Database payload from {origin} has no 'items' list",
            )
        meta = payload.get("meta")
        if not isinstance(meta, dict):
            logger.warning(f"Database payload from {origin} has no 'meta' object")
            meta = {}

        items: List[Repository] = []
        for index, raw in enumerate(raw_items):
            try:
                items.append(Repository.from_dict(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed repository #{index} from {origin}: {e}")
        return cls(items=items, meta=dict(meta))


@dataclass(frozen=True)
class FetchedDocument:
    """A decoded JSON document together with the exact bytes received."""

    value: Any
    raw: bytes
