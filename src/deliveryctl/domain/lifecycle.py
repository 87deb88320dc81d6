"""Order and payment status labels.

Statuses are free-form strings in storage. These enums name the labels
the tool itself writes or reacts to; any other label is accepted as-is.
Only the transition to ``completed`` has an observable effect
(payment status propagation).
"""

from __future__ import annotations

from enum import StrEnum


class OrderStatus(StrEnum):
    """Known order statuses, roughly in fulfilment order."""

    PLACED = "placed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    """Known payment statuses."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMode(StrEnum):
    """Common payment modes (suggestions for the CLI, not enforced)."""

    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    WALLET = "wallet"


def is_completion(status: str, completed_label: str = OrderStatus.COMPLETED) -> bool:
    """Return True when *status* is the completion label.

    Comparison is exact: ``"Completed"`` is a different label.
    """
    return status == completed_label
