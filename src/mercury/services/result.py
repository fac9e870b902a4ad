"""Return types shared by every mercury service method.

Services never raise for expected refusals (unknown user, wrong pair
state, bad page); they hand back a failed :class:`ServiceResult` and
the CLI decides how to show it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

Payload = dict[str, Any]


class ServiceError(BaseModel):
    """Why an operation was refused.

    ``code`` is a stable upper-case token (``NOT_FOUND``, ``INVALID_STATE``,
    ...). For relationship operations ``detail`` repeats the precondition
    flags such as ``first_user_exists`` or ``was_friend``.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Payload = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service call, successful or not.

    ``data`` is op-specific and may carry flags even on failure.
    ``meta`` holds the telemetry span tree when tracing is on.
    """

    model_config = ConfigDict(frozen=True)

    op: str
    ok: bool
    data: Payload = Field(default_factory=dict)
    error: ServiceError | None = None
    warnings: list[str] = Field(default_factory=list)
    meta: Payload | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        *,
        flags: Payload | None = None,
    ) -> ServiceResult:
        """Failed result with *flags* copied into both ``data`` and ``error.detail``."""
        copied = dict(flags or {})
        error = ServiceError(code=code, message=message, detail=copied)
        return cls(op=op, ok=False, data=copied, error=error)
