"""Tests for shared service helpers."""

from __future__ import annotations

import re
from datetime import datetime

from mercury.services._helpers import new_user_id, now_compact, now_iso


class TestNewUserId:
    def test_format(self) -> None:
        assert re.fullmatch(r"[0-9a-f]{32}", new_user_id())

    def test_unique(self) -> None:
        assert len({new_user_id() for _ in range(100)}) == 100


class TestTimestamps:
    def test_now_iso_is_utc(self) -> None:
        parsed = datetime.fromisoformat(now_iso())
        assert parsed.utcoffset() is not None
        assert parsed.utcoffset().total_seconds() == 0  # type: ignore[union-attr]

    def test_now_compact_format(self) -> None:
        assert re.fullmatch(r"\d{8}T\d{6}", now_compact())
