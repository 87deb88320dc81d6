"""Store — repository pattern with unit-of-work transaction coordination.

The Store is the single dependency injected into every service. It owns
the database engine and the order rules. :meth:`Store.begin` opens a
:class:`UnitOfWork`: one SQLite write transaction (``BEGIN IMMEDIATE``)
with named checkpoints and a change journal. Every order write runs
inside its own statement savepoint together with the rule hooks it
fires, so a rejected or failed write leaves nothing behind.

Usage::

    with store.transaction() as uow:
        uow.place_order(Order(id=1006, customer_id=106, delivery_agent_id=1, ...))
        uow.savepoint("before_payment")
        uow.add_payment(Payment(...))
        uow.rollback_to("before_payment")
        # Commits on success, rolls back on any exception.
"""

from __future__ import annotations

import itertools
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from deliveryctl.domain.changes import Change
from deliveryctl.domain.errors import ReferenceNotFound, UnitOfWorkError
from deliveryctl.domain.models import Customer, DeliveryAgent, Order, Payment
from deliveryctl.infrastructure.database.engine import (
    BEGIN_MODE_OPTION,
    db_path_for,
    init_database,
)
from deliveryctl.infrastructure.database.schema import (
    customers,
    delivery_agents,
    orders,
    payments,
)
from deliveryctl.rules.manager import RuleManager

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection, Table
    from sqlalchemy.engine import Engine

    from deliveryctl.config.settings import DeliverySettings

logger = logging.getLogger(__name__)

_CHECKPOINT_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_unit_ids = itertools.count(1)


@dataclass
class _Checkpoint:
    """A named savepoint and the journal length when it was taken."""

    name: str
    journal_mark: int


# ---------------------------------------------------------------------------
# UnitOfWork — one write transaction
# ---------------------------------------------------------------------------


class UnitOfWork:
    """An open write transaction with checkpoints and a change journal.

    Obtain one from :meth:`Store.begin` or :meth:`Store.transaction`.
    After :meth:`commit` or :meth:`rollback` the unit of work is finished
    and every further call raises :class:`UnitOfWorkError`.
    """

    def __init__(self, conn: Connection, rules: RuleManager) -> None:
        self.conn = conn
        self._rules = rules
        self._trans = conn.begin()
        self._checkpoints: list[_Checkpoint] = []
        self._journal: list[Change] = []
        self._statement_seq = 0
        self._state = "active"
        self.id = next(_unit_ids)
        structlog.contextvars.bind_contextvars(uow=self.id)
        logger.debug("Unit of work started")

    @property
    def active(self) -> bool:
        return self._state == "active"

    @property
    def state(self) -> str:
        """``active``, ``committed`` or ``rolled_back``."""
        return self._state

    @property
    def changes(self) -> list[Change]:
        """Changes applied so far (rule side effects included)."""
        return list(self._journal)

    @property
    def checkpoints(self) -> list[str]:
        """Names of the checkpoints currently set, oldest first."""
        return [cp.name for cp in self._checkpoints]

    # ------------------------------------------------------------------
    # Begin / commit / abort
    # ------------------------------------------------------------------

    def commit(self) -> None:
        """Make every change in this unit of work durable."""
        self._ensure_active()
        try:
            self._trans.commit()
        except BaseException:
            self._journal.clear()
            self._finish("rolled_back")
            raise
        self._finish("committed")

    def rollback(self) -> None:
        """Discard every change in this unit of work."""
        self._ensure_active()
        try:
            self._trans.rollback()
        finally:
            self._journal.clear()
            self._finish("rolled_back")

    def _finish(self, state: str) -> None:
        self._state = state
        self._checkpoints.clear()
        self.conn.close()
        logger.debug("Unit of work %s (%d changes)", state, len(self._journal))
        structlog.contextvars.unbind_contextvars("uow")

    def _ensure_active(self) -> None:
        if not self.active:
            msg = f"Unit of work is already {self._state.replace('_', ' ')}"
            raise UnitOfWorkError(msg, state=self._state)

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    def savepoint(self, name: str) -> None:
        """Set a named checkpoint.

        Reusing a name shadows the earlier checkpoint of that name.
        """
        self._ensure_active()
        if not _CHECKPOINT_NAME.match(name):
            msg = f"Invalid checkpoint name: {name!r}"
            raise UnitOfWorkError(msg, name=name)
        self.conn.exec_driver_sql(f'SAVEPOINT "{name}"')
        self._checkpoints.append(_Checkpoint(name=name, journal_mark=len(self._journal)))
        logger.debug("Checkpoint set: %s", name)

    def rollback_to(self, name: str) -> None:
        """Undo every statement issued after checkpoint *name*.

        The checkpoint itself survives and can be rolled back to again;
        checkpoints set after it are discarded.
        """
        index = self._find_checkpoint(name)
        checkpoint = self._checkpoints[index]
        self.conn.exec_driver_sql(f'ROLLBACK TO SAVEPOINT "{name}"')
        del self._checkpoints[index + 1 :]
        discarded = len(self._journal) - checkpoint.journal_mark
        del self._journal[checkpoint.journal_mark :]
        logger.debug("Rolled back to checkpoint %s (%d changes discarded)", name, discarded)

    def release(self, name: str) -> None:
        """Forget checkpoint *name* (and any set after it), keeping all changes."""
        index = self._find_checkpoint(name)
        self.conn.exec_driver_sql(f'RELEASE SAVEPOINT "{name}"')
        del self._checkpoints[index:]

    def _find_checkpoint(self, name: str) -> int:
        self._ensure_active()
        for index in range(len(self._checkpoints) - 1, -1, -1):
            if self._checkpoints[index].name == name:
                return index
        msg = f"No such checkpoint: {name!r}"
        raise UnitOfWorkError(msg, name=name)

    @contextmanager
    def _statement(self) -> Iterator[list[Change]]:
        """Run one write and its rule hooks atomically.

        Yields a list the caller appends its changes to. They reach the
        journal only if the whole statement succeeds.
        """
        self._ensure_active()
        self._statement_seq += 1
        name = f"_stmt_{self._statement_seq}"
        staged: list[Change] = []
        self.conn.exec_driver_sql(f'SAVEPOINT "{name}"')
        try:
            yield staged
        except BaseException:
            try:
                self.conn.exec_driver_sql(f'ROLLBACK TO SAVEPOINT "{name}"')
                self.conn.exec_driver_sql(f'RELEASE SAVEPOINT "{name}"')
            except SQLAlchemyError:
                logger.warning("Failed to roll back statement savepoint %s", name)
            raise
        self.conn.exec_driver_sql(f'RELEASE SAVEPOINT "{name}"')
        self._journal.extend(staged)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_customer(self, customer_id: int) -> Customer | None:
        row = self._get(customers, customer_id)
        return Customer.from_row(row) if row is not None else None

    def get_agent(self, agent_id: int) -> DeliveryAgent | None:
        row = self._get(delivery_agents, agent_id)
        return DeliveryAgent.from_row(row) if row is not None else None

    def get_order(self, order_id: int) -> Order | None:
        row = self._get(orders, order_id)
        return Order.from_row(row) if row is not None else None

    def get_payment_for_order(self, order_id: int) -> Payment | None:
        self._ensure_active()
        row = self.conn.execute(select(payments).where(payments.c.order_id == order_id)).first()
        return Payment.from_row(row) if row is not None else None

    def _get(self, table: Table, key: int) -> object | None:
        self._ensure_active()
        return self.conn.execute(select(table).where(table.c.id == key)).first()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_customer(self, customer: Customer) -> Customer:
        with self._statement() as staged:
            result = self.conn.execute(insert(customers).values(**customer.to_values()))
            new_id = int(result.inserted_primary_key[0])
            staged.append(Change("insert", "customers", new_id))
        return customer.model_copy(update={"id": new_id})

    def add_agent(self, agent: DeliveryAgent) -> DeliveryAgent:
        with self._statement() as staged:
            result = self.conn.execute(insert(delivery_agents).values(**agent.to_values()))
            new_id = int(result.inserted_primary_key[0])
            staged.append(Change("insert", "delivery_agents", new_id))
        return agent.model_copy(update={"id": new_id})

    def place_order(self, order: Order) -> Order:
        """Insert an order, firing the pre- and post-insert rules.

        Raises:
            ReferenceNotFound: The customer or delivery agent does not exist.
            ConstraintViolation: A rule rejected the order (nothing written).
        """
        with self._statement() as staged:
            if self._get(customers, order.customer_id) is None:
                msg = f"No customer found with ID: {order.customer_id}"
                raise ReferenceNotFound(msg, customer_id=order.customer_id)
            if self._get(delivery_agents, order.delivery_agent_id) is None:
                msg = f"No delivery agent found with ID: {order.delivery_agent_id}"
                raise ReferenceNotFound(msg, delivery_agent_id=order.delivery_agent_id)

            self._rules.before_insert(self.conn, order)

            result = self.conn.execute(insert(orders).values(**order.to_values()))
            placed = order.model_copy(update={"id": int(result.inserted_primary_key[0])})
            staged.append(Change("insert", "orders", placed.id))

            staged.extend(self._rules.after_insert(self.conn, placed))
        logger.debug("Order %s placed with agent %s", placed.id, placed.delivery_agent_id)
        return placed

    def update_order_status(self, order_id: int, status: str) -> Order:
        """Set an order's status, firing the post-update rules.

        Raises:
            ReferenceNotFound: The order does not exist.
        """
        with self._statement() as staged:
            before = self.get_order(order_id)
            if before is None:
                msg = f"No order found with ID: {order_id}"
                raise ReferenceNotFound(msg, order_id=order_id)

            self.conn.execute(update(orders).where(orders.c.id == order_id).values(status=status))
            after = before.model_copy(update={"status": status})
            staged.append(Change("update", "orders", order_id))

            staged.extend(self._rules.after_update(self.conn, before, after))
        return after

    def add_payment(self, payment: Payment) -> Payment:
        """Insert a payment for an existing order.

        Raises:
            ReferenceNotFound: The order does not exist.
        """
        with self._statement() as staged:
            if self._get(orders, payment.order_id) is None:
                msg = f"No order found with ID: {payment.order_id}"
                raise ReferenceNotFound(msg, order_id=payment.order_id)
            result = self.conn.execute(insert(payments).values(**payment.to_values()))
            new_id = int(result.inserted_primary_key[0])
            staged.append(Change("insert", "payments", new_id))
        return payment.model_copy(update={"id": new_id})


# ---------------------------------------------------------------------------
# Store — the repository
# ---------------------------------------------------------------------------


class Store:
    """Repository encapsulating the database and the order rules.

    Constructed once at CLI startup from :class:`DeliverySettings` and
    reached through the click context. Services receive the Store via
    their :class:`BaseService` constructor.
    """

    def __init__(self, settings: DeliverySettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(
            self.root,
            db_filename=settings.store.db_filename,
            lock_timeout=settings.store.lock_timeout,
        )
        self._rules = RuleManager(
            completed_status=settings.rules.completed_status,
            load_plugins=settings.rules.plugins,
        )

    @property
    def root(self) -> Path:
        """The store root directory."""
        return self._settings.store_root

    @property
    def db_path(self) -> Path:
        return db_path_for(self.root, self._settings.store.db_filename)

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def rules(self) -> RuleManager:
        return self._rules

    @property
    def settings(self) -> DeliverySettings:
        """The resolved settings for this store."""
        return self._settings

    def begin(self) -> UnitOfWork:
        """Open a write unit of work. The caller must commit or roll it back."""
        conn = self._engine.connect()
        conn.execution_options(**{BEGIN_MODE_OPTION: "IMMEDIATE"})
        try:
            return UnitOfWork(conn, self._rules)
        except BaseException:
            conn.close()
            raise

    @contextmanager
    def transaction(self) -> Iterator[UnitOfWork]:
        """Unit of work that commits on success and rolls back on any exception.

        The block may finish the unit of work itself (``uow.rollback()``);
        nothing further happens at exit in that case.
        """
        uow = self.begin()
        try:
            yield uow
        except BaseException:
            if uow.active:
                uow.rollback()
            raise
        if uow.active:
            uow.commit()

    @contextmanager
    def read(self) -> Iterator[Connection]:
        """Read-only connection (deferred BEGIN, no write lock)."""
        with self._engine.connect() as conn:
            yield conn

    def close(self) -> None:
        """Dispose of pooled connections."""
        self._engine.dispose()
