"""SQLite database engine, schema, and views via SQLAlchemy Core."""

from deliveryctl.infrastructure.database.engine import (
    create_db_engine,
    db_path_for,
    init_database,
)
from deliveryctl.infrastructure.database.schema import (
    customers,
    delivery_agents,
    metadata,
    orders,
    payments,
)
from deliveryctl.infrastructure.database.views import (
    customer_orders,
    payment_details,
    rebuild_views,
)

__all__ = [
    "create_db_engine",
    "customer_orders",
    "customers",
    "db_path_for",
    "delivery_agents",
    "init_database",
    "metadata",
    "orders",
    "payment_details",
    "payments",
    "rebuild_views",
]
