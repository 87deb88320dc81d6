"""SQLAlchemy Core table definitions for the delivery store.

Four tables: customers, delivery_agents, orders, payments. Read
projections over them live in :mod:`views`.
"""

from __future__ import annotations

from sqlalchemy import (
    REAL,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()

customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("age", Integer),
    Column("address", Text),  # overwritten on every order placement
)

delivery_agents = Table(
    "delivery_agents",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("phone", Text),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("delivery_agent_id", Integer, ForeignKey("delivery_agents.id"), nullable=False),
    Column("status", Text, nullable=False, default="placed", server_default="placed"),
    Column("address", Text),  # copy taken at placement
    Column("total_amount", REAL, nullable=False),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False, unique=True),
    Column("amount", REAL, nullable=False),
    Column("mode", Text, nullable=False),
    Column("status", Text, nullable=False, default="pending", server_default="pending"),
)

# ---------------------------------------------------------------------------
# Indexes for rule lookups
# ---------------------------------------------------------------------------

Index("ix_orders_customer", orders.c.customer_id)
Index("ix_orders_agent", orders.c.delivery_agent_id)
Index("ix_orders_status", orders.c.status)
