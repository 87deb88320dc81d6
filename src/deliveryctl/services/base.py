"""BaseService — shared foundation for all deliveryctl services.

Every service receives a :class:`Store` at construction time. Services
own their unit-of-work boundaries via ``self._store.transaction()`` and
translate expected exceptions into failed :class:`ServiceResult` objects.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from deliveryctl.domain.errors import DeliveryError
from deliveryctl.services.result import ServiceResult

if TYPE_CHECKING:
    from deliveryctl.infrastructure.store import Store

logger = logging.getLogger(__name__)

# Exceptions a service turns into ``ok=False`` results.
EXPECTED_ERRORS: tuple[type[Exception], ...] = (
    DeliveryError,
    IntegrityError,
    OperationalError,
    ValidationError,
)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class OrderService(BaseService):
            def place_order(self, ...) -> ServiceResult:
                try:
                    with self._store.transaction() as uow:
                        ...
                except EXPECTED_ERRORS as exc:
                    return self._failure("place_order", exc)
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    @staticmethod
    def _failure(op: str, exc: Exception, **extra: Any) -> ServiceResult:
        """Build a failed result from an expected exception.

        *extra* is merged into the error detail (batch step index, ...).
        """
        code, message = _describe(exc)
        detail = {**exc.detail, **extra} if isinstance(exc, DeliveryError) else extra
        logger.debug("%s failed: %s %s", op, code, message)
        return ServiceResult.failure(op, code, message, **detail)


def _describe(exc: Exception) -> tuple[str, str]:
    """Error code and message for one of :data:`EXPECTED_ERRORS`."""
    if isinstance(exc, DeliveryError):
        return exc.code, exc.message
    if isinstance(exc, IntegrityError):
        return "INTEGRITY_ERROR", f"Integrity error: {exc.orig}"
    if isinstance(exc, OperationalError):
        return "STORE_UNAVAILABLE", f"Database error: {exc.orig}"
    if isinstance(exc, ValidationError):
        fields = (f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
        return "VALIDATION_FAILED", "; ".join(fields)
    raise TypeError(f"Unexpected exception type: {type(exc).__name__}") from exc
