"""Tests for the format_result dispatcher and OutputSettings."""

import json

import pytest
from pydantic import ValidationError

from mercury.output.formatters import OutputSettings, format_result
from mercury.services.result import ServiceResult


def _ok(op: str = "test", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


class TestOutputSettings:
    def test_defaults(self) -> None:
        s = OutputSettings()
        assert (s.json_output, s.quiet, s.verbose) == (False, False, False)

    def test_frozen(self) -> None:
        s = OutputSettings()
        with pytest.raises(ValidationError):
            s.quiet = True  # type: ignore[misc]


class TestFormatResult:
    def test_json_mode(self) -> None:
        result = _ok("create_user", id="u1")
        data = json.loads(format_result(result, settings=OutputSettings(json_output=True)))
        assert data["ok"] is True
        assert data["data"]["id"] == "u1"

    def test_json_shorthand(self) -> None:
        data = json.loads(format_result(_ok("count_users", count=3), json_output=True))
        assert data["data"]["count"] == 3

    def test_settings_override_shorthand(self) -> None:
        output = format_result(
            _ok("count_users", count=3), settings=OutputSettings(quiet=True), json_output=True
        )
        assert output == "3"

    def test_json_wins_over_quiet(self) -> None:
        settings = OutputSettings(json_output=True, quiet=True)
        assert json.loads(format_result(_ok("x"), settings=settings))["op"] == "x"

    def test_rich_mode(self) -> None:
        output = format_result(_ok("check_friends", are_friends=True))
        assert "OK" in output
        assert "are_friends: yes" in output

    def test_failure_json_keeps_flags(self) -> None:
        result = ServiceResult.failure(
            "delete_friend", "INVALID_STATE", "no", flags={"was_friend": False}
        )
        data = json.loads(format_result(result, json_output=True))
        assert data["error"]["detail"] == {"was_friend": False}
        assert data["data"] == {"was_friend": False}
