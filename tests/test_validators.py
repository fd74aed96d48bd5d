"""Tests for input validators."""

import pytest

from bookmark_sync.validators import (
    format_validation_error,
    validate_api_url,
    validate_sync_id,
    validate_sync_payload,
)

VALID_ID = "0123456789abcdef0123456789ABCDEF"


class TestValidateSyncId:
    """Tests for validate_sync_id."""

    def test_valid(self):
        assert validate_sync_id(VALID_ID) == (True, "")

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty(self, value):
        is_valid, error = validate_sync_id(value)
        assert not is_valid
        assert error == "Sync ID cannot be empty"

    @pytest.mark.parametrize("value", ["abc", VALID_ID + "0", "g" * 32])
    def test_wrong_shape(self, value):
        is_valid, error = validate_sync_id(value)
        assert not is_valid
        assert "32 hexadecimal" in error


class TestValidateApiUrl:
    """Tests for validate_api_url."""

    @pytest.mark.parametrize(
        "url", ["https://api.example.com", "http://localhost:8080/api"]
    )
    def test_valid(self, url):
        assert validate_api_url(url) == (True, "")

    def test_empty(self):
        assert validate_api_url("") == (False, "API url cannot be empty")

    @pytest.mark.parametrize("url", ["ftp://example.com", "example.com", "https://"])
    def test_invalid(self, url):
        is_valid, error = validate_api_url(url)
        assert not is_valid
        assert "http(s)" in error


class TestValidateSyncPayload:
    """Tests for validate_sync_payload."""

    def test_valid(self):
        assert validate_sync_payload("blob") == (True, "")

    def test_empty(self):
        is_valid, error = validate_sync_payload("")
        assert not is_valid
        assert "cannot be empty" in error

    def test_size_counts_bytes(self):
        # "é" is two bytes in UTF-8
        assert validate_sync_payload("é" * 5, max_size=10)[0]
        is_valid, error = validate_sync_payload("é" * 6, max_size=10)
        assert not is_valid
        assert error == "Bookmarks data exceeds maximum size of 10 bytes"


def test_format_validation_error():
    assert format_validation_error("Field", "is bad") == "Field is bad"
