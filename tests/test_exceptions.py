"""
Tests for the Plugstore exception hierarchy.

Covers message formatting, the attributes each error carries, and the
inheritance relationships callers rely on when catching errors.
"""

import pytest

from plugstore.exceptions import (
    CacheIOError,
    ConfigurationError,
    NetworkError,
    ParseError,
    PlugstoreError,
    ValidationError,
)


class TestPlugstoreError:
    def test_basic_message(self):
        error = PlugstoreError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.details is None

    def test_message_with_details(self):
        error = PlugstoreError("Operation failed", details="Connection timeout")
        assert str(error) == "Operation failed - Connection timeout"

    def test_can_be_raised_and_caught(self):
        with pytest.raises(PlugstoreError, match="test error"):
            raise PlugstoreError("test error")


class TestSubclasses:
    @pytest.mark.parametrize(
        "error_cls",
        [ConfigurationError, ValidationError, NetworkError, ParseError, CacheIOError],
    )
    def test_inherit_from_base(self, error_cls):
        assert issubclass(error_cls, PlugstoreError)

    def test_parse_error_is_network_error(self):
        with pytest.raises(NetworkError):
            raise ParseError("bad json", url="https://example.com/db.json")

    def test_configuration_error_path(self):
        error = ConfigurationError("Bad value", path="/etc/plugstore.yaml")
        assert error.path == "/etc/plugstore.yaml"

    def test_validation_error_fields(self):
        error = ValidationError("Invalid", field="full_name", value="x")
        assert error.field == "full_name"
        assert error.value == "x"

    def test_network_error_fields(self):
        error = NetworkError(
            "HTTP 404",
            url="https://example.com/README.md",
            status_code=404,
            body="Not Found",
            details="Not Found",
        )
        assert error.url == "https://example.com/README.md"
        assert error.status_code == 404
        assert error.body == "Not Found"
        assert str(error) == "HTTP 404 - Not Found"

    def test_network_error_defaults(self):
        error = NetworkError("Request timed out")
        assert error.status_code is None
        assert error.body is None

    def test_cache_io_error_path(self):
        error = CacheIOError("Could not write", path="/tmp/db.json", details="EACCES")
        assert error.path == "/tmp/db.json"
        assert str(error) == "Could not write - EACCES"
