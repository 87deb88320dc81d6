"""Pluggy hook specifications for row-level order events.

Three events bracket every order write. The unit of work calls them
explicitly, inside the same statement savepoint as the write itself:

- ``validate_order_insert`` before an INSERT (may reject it),
- ``after_order_insert`` after an INSERT,
- ``after_order_update`` after an UPDATE.

After-hooks return a :class:`Change` describing their follow-on write
(or None), which the unit of work appends to its change journal.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from deliveryctl.domain.changes import Change
    from deliveryctl.domain.models import Order

PROJECT_NAME = "deliveryctl"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class OrderRuleSpec:
    """Hook specifications for order rules."""

    @hookspec
    def validate_order_insert(self, conn: Connection, order: Order) -> None:
        """Called before an order row is written. Raise to reject the insert."""

    @hookspec
    def after_order_insert(self, conn: Connection, order: Order) -> Change | None:
        """Called after an order row is written."""

    @hookspec
    def after_order_update(
        self,
        conn: Connection,
        before: Order,
        after: Order,
    ) -> Change | None:
        """Called after an order row is updated."""
