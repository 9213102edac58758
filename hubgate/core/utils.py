"""
Common Utilities

Helper functions used throughout the application.
"""

import hashlib
import json
import uuid
from datetime import UTC, datetime
from typing import Any, Hashable, Iterable, TypeVar

from slugify import slugify as python_slugify

T = TypeVar("T", bound=Hashable)


def generate_short_id(prefix: str = "") -> str:
    """Generate a short, URL-safe ID.

    Args:
        prefix: Optional prefix for the ID

    Returns:
        Short ID string (e.g., "req-abc123def456")
    """
    short_uuid = uuid.uuid4().hex[:12]
    if prefix:
        return f"{prefix}-{short_uuid}"
    return short_uuid


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current datetime with UTC timezone
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def slugify(text: str, max_length: int = 50, separator: str = "-") -> str:
    """Lowercase, URL-safe slug; empty when text has no letters or digits."""
    return python_slugify(text, max_length=max_length, separator=separator)


def dedupe_preserving_order(items: Iterable[T]) -> list[T]:
    """Drop repeated items, keeping the first occurrence of each."""
    return list(dict.fromkeys(items))


def canonical_json(data: Any) -> str:
    """Serialize data with sorted keys and no insignificant whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def fingerprint(data: Any) -> str:
    """SHA-256 of the canonical JSON form of data.

    Two structurally equal payloads always share a fingerprint regardless of
    dict key order.
    """
    return hashlib.sha256(canonical_json(data).encode()).hexdigest()


def mask_sensitive_data(
    data: str,
    visible_chars: int = 4,
    mask_char: str = "*",
) -> str:
    """Mask sensitive data, showing only first/last few characters.

    Args:
        data: Data to mask
        visible_chars: Number of characters to show at start and end
        mask_char: Character to use for masking

    Returns:
        Masked string
    """
    if len(data) <= visible_chars * 2:
        return mask_char * len(data)
    return f"{data[:visible_chars]}{mask_char * 8}{data[-visible_chars:]}"


def scope_ancestors(scope: str) -> list[str]:
    """List a slash-separated scope and every ancestor, most specific first.

    Example:
        scope_ancestors("/hub/deployments/gpt4o-eus")
        # ["/hub/deployments/gpt4o-eus", "/hub/deployments", "/hub", "/"]
    """
    parts = [part for part in scope.split("/") if part]
    ancestors = ["/" + "/".join(parts[:i]) for i in range(len(parts), 0, -1)]
    ancestors.append("/")
    return ancestors


def normalize_scope(scope: str) -> str:
    """Collapse duplicate slashes and strip the trailing slash of a scope."""
    parts = [part for part in scope.strip().split("/") if part]
    return "/" + "/".join(parts)
