"""
Input validation functions for bookmark-sync.

Provides validation for sync IDs, service urls and encrypted payloads
before they are sent to the remote sync service.
"""

import re
from urllib.parse import urlparse

from bookmark_sync.constants import MAX_SYNC_SIZE_BYTES, SYNC_ID_LENGTH

_SYNC_ID_PATTERN = re.compile(rf"^[0-9a-fA-F]{{{SYNC_ID_LENGTH}}}$")


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Sync ID")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_sync_id(sync_id: str | None) -> tuple[bool, str]:
    """
    Validate a sync ID.

    Args:
        sync_id: The sync ID to validate

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty
        - Must be 32 hexadecimal characters
    """
    if not sync_id or not sync_id.strip():
        return (
            False,
            format_validation_error("Sync ID", "cannot be empty"),
        )

    if not _SYNC_ID_PATTERN.match(sync_id):
        return (
            False,
            format_validation_error(
                "Sync ID",
                f"must be {SYNC_ID_LENGTH} hexadecimal characters",
            ),
        )

    return (True, "")


def validate_api_url(api_url: str | None) -> tuple[bool, str]:
    """
    Validate the sync service url.

    Args:
        api_url: The url to validate

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - Cannot be empty
        - Must use http or https and include a host
    """
    if not api_url or not api_url.strip():
        return (
            False,
            format_validation_error("API url", "cannot be empty"),
        )

    parsed = urlparse(api_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return (
            False,
            format_validation_error(
                "API url", "must be an http(s) url with a host"
            ),
        )

    return (True, "")


def validate_sync_payload(
    encrypted: str | None, max_size: int = MAX_SYNC_SIZE_BYTES
) -> tuple[bool, str]:
    """
    Validate an encrypted bookmarks payload.

    Args:
        encrypted: The encrypted bookmarks to validate
        max_size: Maximum size in bytes (default: 512,000)

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - Cannot be empty
        - Cannot exceed max_size bytes
    """
    if not encrypted:
        return (
            False,
            format_validation_error("Bookmarks data", "cannot be empty"),
        )

    payload_bytes = len(encrypted.encode("utf-8"))
    if payload_bytes > max_size:
        return (
            False,
            format_validation_error(
                "Bookmarks data", f"exceeds maximum size of {max_size} bytes"
            ),
        )

    return (True, "")
