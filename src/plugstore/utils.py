import importlib.metadata
from typing import Any, Mapping, Optional

from plugstore.constants import (
    APP_NAME,
    ERROR_BODY_PREVIEW_CHARS,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
)

_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `plugstore/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def parse_content_length(headers: Optional[Mapping[str, Any]]) -> Optional[int]:
    """
    Extract the Content-Length value from a response header mapping.

    Header names are matched case-insensitively so plain dicts work as well as
    aiohttp's CIMultiDictProxy.

    Returns:
        Optional[int]: The declared length, or None if the header is absent or not a non-negative integer.
    """
    if not headers:
        return None
    for key, value in headers.items():
        if str(key).lower() != "content-length":
            continue
        try:
            length = int(str(value).strip())
        except (TypeError, ValueError):
            return None
        return length if length >= 0 else None
    return None


def is_success_status(status: int) -> bool:
    """Return True for 2xx HTTP status codes."""
    return HTTP_STATUS_OK_MIN <= status <= HTTP_STATUS_OK_MAX


def preview_body(body: Optional[str]) -> str:
    """Shorten a response body for inclusion in error messages."""
    if not body:
        return ""
    body = body.strip()
    if len(body) > ERROR_BODY_PREVIEW_CHARS:
        return f"{body[:ERROR_BODY_PREVIEW_CHARS]}..."
    return body


def format_duration_ms(seconds: float) -> str:
    """Format an elapsed time in seconds as milliseconds with one decimal."""
    return f"{seconds * 1000:.1f}ms"
