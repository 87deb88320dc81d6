"""ViewService — read projections and their rebuild."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select

from deliveryctl.infrastructure.database.views import (
    customer_orders,
    payment_details,
    rebuild_views,
)
from deliveryctl.services.base import EXPECTED_ERRORS, BaseService
from deliveryctl.services.result import ServiceResult


class ViewService(BaseService):
    """Queries the saved views; rebuilds them on demand."""

    def customer_orders(self, *, customer_id: int | None = None) -> ServiceResult:
        """Rows of the ``customer_orders`` view, optionally for one customer."""
        stmt = select(customer_orders).order_by(
            customer_orders.c.customer_id, customer_orders.c.order_id
        )
        if customer_id is not None:
            stmt = stmt.where(customer_orders.c.customer_id == customer_id)
        return self._rows("customer_orders", stmt)

    def payment_details(self, *, order_id: int | None = None) -> ServiceResult:
        """Rows of the ``payment_details`` view, optionally for one order."""
        stmt = select(payment_details).order_by(payment_details.c.payment_id)
        if order_id is not None:
            stmt = stmt.where(payment_details.c.order_id == order_id)
        return self._rows("payment_details", stmt)

    def rebuild(self) -> ServiceResult:
        """Drop and recreate every view. Table data is untouched."""
        op = "rebuild_views"
        try:
            with self._store.transaction() as uow:
                rebuilt = rebuild_views(uow.conn)
        except EXPECTED_ERRORS as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"views": rebuilt})

    def _rows(self, op: str, stmt: Any) -> ServiceResult:
        with self._store.read() as conn:
            rows = [dict(r._mapping) for r in conn.execute(stmt)]
        return ServiceResult(ok=True, op=op, data={"count": len(rows), "rows": rows})
