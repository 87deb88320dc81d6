"""The result contract shared by every service operation.

Public service methods never raise for expected failures (rule
rejections, missing references, bad input, locked database). They
return a :class:`ServiceResult` with ``ok=False`` and a coded
:class:`ServiceError`, which the CLI maps to exit status 1.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Why an operation failed.

    ``code`` is a stable identifier such as ``CONSTRAINT_VIOLATION`` or
    ``NOT_FOUND``; ``detail`` carries the offending keys (agent id,
    failing batch step, ...).
    """

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name, e.g. ``"place_order"``.
        data: Operation payload. Row listings use ``{"count", "rows"}``.
        warnings: Non-fatal observations (e.g. completing an order with
            no payment).
        error: Set when ``ok`` is False.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None

    @classmethod
    def failure(cls, op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        """Shorthand for a failed result."""
        return cls(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )
