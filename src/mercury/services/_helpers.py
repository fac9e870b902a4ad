"""Id and timestamp helpers used by the services."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

# Sortable and filename-safe.
_COMPACT_FORMAT = "%Y%m%dT%H%M%S"


def new_user_id() -> str:
    """Random UUID4 as 32 hex characters.

    Examples:
        >>> len(new_user_id())
        32
    """
    return uuid.uuid4().hex


def now_iso() -> str:
    """UTC timestamp stored in ``created``/``modified`` columns."""
    return datetime.now(UTC).isoformat()


def now_compact() -> str:
    """UTC timestamp used to name database backups."""
    return datetime.now(UTC).strftime(_COMPACT_FORMAT)
