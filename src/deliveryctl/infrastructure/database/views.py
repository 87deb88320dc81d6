"""Read projections: saved views over customers, orders, and payments.

Views hold no state of their own, so :func:`rebuild_views` can drop and
recreate them at any time without data loss. The view bodies are
SQLAlchemy ``select()`` constructs compiled to SQLite DDL, and the
lightweight ``table()`` objects below let services query them with Core.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import column, select, table, text
from sqlalchemy.dialects import sqlite

from deliveryctl.infrastructure.database.schema import customers, orders, payments

if TYPE_CHECKING:
    from sqlalchemy import Connection, Select

CUSTOMER_ORDERS_VIEW = "customer_orders"
PAYMENT_DETAILS_VIEW = "payment_details"


def customer_orders_select() -> Select:
    """Customers joined to their orders."""
    return select(
        customers.c.id.label("customer_id"),
        customers.c.name,
        orders.c.id.label("order_id"),
        orders.c.total_amount,
    ).select_from(customers.join(orders, orders.c.customer_id == customers.c.id))


def payment_details_select() -> Select:
    """Payments joined to their order and the ordering customer."""
    return select(
        payments.c.id.label("payment_id"),
        orders.c.id.label("order_id"),
        customers.c.id.label("customer_id"),
        customers.c.name,
        customers.c.age,
        customers.c.address,
        payments.c.amount,
        payments.c.mode,
        payments.c.status,
    ).select_from(
        payments.join(orders, payments.c.order_id == orders.c.id).join(
            customers, orders.c.customer_id == customers.c.id
        )
    )


VIEW_DEFINITIONS = {
    CUSTOMER_ORDERS_VIEW: customer_orders_select,
    PAYMENT_DETAILS_VIEW: payment_details_select,
}

# Queryable handles for the views.
customer_orders = table(
    CUSTOMER_ORDERS_VIEW,
    column("customer_id"),
    column("name"),
    column("order_id"),
    column("total_amount"),
)

payment_details = table(
    PAYMENT_DETAILS_VIEW,
    column("payment_id"),
    column("order_id"),
    column("customer_id"),
    column("name"),
    column("age"),
    column("address"),
    column("amount"),
    column("mode"),
    column("status"),
)


def view_ddl(name: str) -> str:
    """Return the ``CREATE VIEW IF NOT EXISTS`` statement for *name*."""
    body = VIEW_DEFINITIONS[name]().compile(
        dialect=sqlite.dialect(),
        compile_kwargs={"literal_binds": True},
    )
    return f"CREATE VIEW IF NOT EXISTS {name} AS {body}"


def create_views(conn: Connection) -> None:
    """Create every view that does not exist yet."""
    for name in VIEW_DEFINITIONS:
        conn.execute(text(view_ddl(name)))


def drop_views(conn: Connection) -> None:
    """Drop every view (tables are untouched)."""
    for name in VIEW_DEFINITIONS:
        conn.execute(text(f"DROP VIEW IF EXISTS {name}"))


def rebuild_views(conn: Connection) -> list[str]:
    """Drop and recreate all views. Returns the view names rebuilt."""
    drop_views(conn)
    create_views(conn)
    return list(VIEW_DEFINITIONS)
