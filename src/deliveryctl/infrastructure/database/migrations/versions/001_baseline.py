"""Baseline schema — customers, delivery agents, orders, payments, views.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19

Fresh stores are created from schema.py and stamped at this revision by
``deliveryctl init``; stores created before version tracking get it
applied (or stamped, if the tables already exist) by ``deliveryctl upgrade``.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from deliveryctl.infrastructure.database.views import VIEW_DEFINITIONS, view_ddl

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("age", sa.Integer),
        sa.Column("address", sa.Text),
    )

    op.create_table(
        "delivery_agents",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("phone", sa.Text),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=False),
        sa.Column(
            "delivery_agent_id",
            sa.Integer,
            sa.ForeignKey("delivery_agents.id"),
            nullable=False,
        ),
        sa.Column("status", sa.Text, nullable=False, server_default="placed"),
        sa.Column("address", sa.Text),
        sa.Column("total_amount", sa.REAL, nullable=False),
    )
    op.create_index("ix_orders_customer", "orders", ["customer_id"])
    op.create_index("ix_orders_agent", "orders", ["delivery_agent_id"])
    op.create_index("ix_orders_status", "orders", ["status"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "order_id", sa.Integer, sa.ForeignKey("orders.id"), nullable=False, unique=True
        ),
        sa.Column("amount", sa.REAL, nullable=False),
        sa.Column("mode", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
    )

    for name in VIEW_DEFINITIONS:
        op.execute(view_ddl(name))


def downgrade() -> None:
    for name in VIEW_DEFINITIONS:
        op.execute(f"DROP VIEW IF EXISTS {name}")
    op.drop_table("payments")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_agent", table_name="orders")
    op.drop_index("ix_orders_customer", table_name="orders")
    op.drop_table("orders")
    op.drop_table("delivery_agents")
    op.drop_table("customers")
