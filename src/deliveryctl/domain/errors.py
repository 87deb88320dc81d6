"""Domain exceptions raised by the store and the rule hooks.

Services translate these into :class:`ServiceResult` errors; everything
below the service layer lets them propagate.
"""

from __future__ import annotations

from typing import Any


class DeliveryError(Exception):
    """Base class for expected, reportable failures."""

    code = "DELIVERY_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail


class ConstraintViolation(DeliveryError):
    """A rule rejected a write before anything was stored."""

    code = "CONSTRAINT_VIOLATION"


class ReferenceNotFound(DeliveryError):
    """A write referenced a customer, agent, or order that does not exist."""

    code = "NOT_FOUND"


class UnitOfWorkError(DeliveryError):
    """The unit of work was used incorrectly (finished, unknown checkpoint)."""

    code = "UNIT_OF_WORK_ERROR"
