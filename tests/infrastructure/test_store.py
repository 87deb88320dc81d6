"""Tests for Store and UnitOfWork: writes, rules, checkpoints, abort."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from deliveryctl.config.settings import DeliverySettings
from deliveryctl.domain.errors import ConstraintViolation, ReferenceNotFound, UnitOfWorkError
from deliveryctl.domain.models import Customer, DeliveryAgent, Order, Payment
from deliveryctl.infrastructure.database.schema import customers, orders, payments
from deliveryctl.infrastructure.store import Store
from deliveryctl.rules.hookspecs import hookimpl


def _order(order_id: int, customer_id: int = 106, agent_id: int = 1, **kwargs) -> Order:
    kwargs.setdefault("total_amount", 250)
    return Order(id=order_id, customer_id=customer_id, delivery_agent_id=agent_id, **kwargs)


def _order_ids(store: Store) -> list[int]:
    with store.read() as conn:
        return list(conn.execute(select(orders.c.id).order_by(orders.c.id)).scalars())


def _payment_status(store: Store, order_id: int) -> str | None:
    with store.read() as conn:
        return conn.execute(
            select(payments.c.status).where(payments.c.order_id == order_id)
        ).scalar_one_or_none()


def _customer_address(store: Store, customer_id: int) -> str | None:
    with store.read() as conn:
        return conn.execute(
            select(customers.c.address).where(customers.c.id == customer_id)
        ).scalar_one()


# ---------------------------------------------------------------------------
# Commit and abort
# ---------------------------------------------------------------------------


class TestCommitAndAbort:
    def test_order_and_payment_persist_after_commit(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.place_order(_order(1006, 106, 1, total_amount=250))
        uow.add_payment(Payment(id=4, order_id=1006, amount=250, mode="upi", status="completed"))
        uow.commit()

        assert _order_ids(seeded_store) == [1006]
        assert _payment_status(seeded_store, 1006) == "completed"

    def test_abort_leaves_no_trace(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.place_order(_order(1007, 107, 2, total_amount=300, address="9 Lake Road"))
        uow.rollback()

        assert _order_ids(seeded_store) == []
        # Address sync was undone too.
        assert _customer_address(seeded_store, 107) == "4 Park Street"

    def test_transaction_commits_on_success(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006))
        assert uow.state == "committed"
        assert _order_ids(seeded_store) == [1006]

    def test_transaction_rolls_back_on_exception(self, seeded_store: Store) -> None:
        with pytest.raises(RuntimeError), seeded_store.transaction() as uow:
            uow.place_order(_order(1006))
            raise RuntimeError("boom")
        assert uow.state == "rolled_back"
        assert _order_ids(seeded_store) == []

    def test_explicit_rollback_inside_transaction(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006))
            uow.rollback()
        assert _order_ids(seeded_store) == []

    def test_journal_cleared_on_rollback(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.place_order(_order(1006))
        assert uow.changes
        uow.rollback()
        assert uow.changes == []

    def test_finished_unit_of_work_rejects_calls(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.commit()
        assert not uow.active
        with pytest.raises(UnitOfWorkError, match="already committed"):
            uow.place_order(_order(1006))
        with pytest.raises(UnitOfWorkError):
            uow.commit()
        with pytest.raises(UnitOfWorkError):
            uow.savepoint("late")


# ---------------------------------------------------------------------------
# Rule A: payment status propagation
# ---------------------------------------------------------------------------


class TestPaymentStatusPropagation:
    @pytest.fixture
    def placed(self, seeded_store: Store) -> Store:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006))
            uow.add_payment(Payment(id=4, order_id=1006, amount=250, mode="upi"))
        return seeded_store

    def test_completion_completes_payment(self, placed: Store) -> None:
        with placed.transaction() as uow:
            uow.update_order_status(1006, "completed")
            # Visible inside the same unit of work.
            assert uow.get_payment_for_order(1006).status == "completed"
        assert _payment_status(placed, 1006) == "completed"

    @pytest.mark.parametrize("status", ["preparing", "out_for_delivery", "cancelled", "Completed"])
    def test_other_status_leaves_payment(self, placed: Store, status: str) -> None:
        with placed.transaction() as uow:
            uow.update_order_status(1006, status)
        assert _payment_status(placed, 1006) == "pending"

    def test_only_matching_payment_changes(self, placed: Store) -> None:
        with placed.transaction() as uow:
            uow.place_order(_order(1007, 107, 2, total_amount=300))
            uow.add_payment(Payment(id=5, order_id=1007, amount=300, mode="cash"))
        with placed.transaction() as uow:
            uow.update_order_status(1006, "completed")
        assert _payment_status(placed, 1006) == "completed"
        assert _payment_status(placed, 1007) == "pending"

    def test_completion_without_payment(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006))
        with seeded_store.transaction() as uow:
            uow.update_order_status(1006, "completed")
            rule_change = uow.changes[-1]
        assert rule_change.rule == "payment_status_propagation"
        assert rule_change.rows == 0

    def test_unknown_order(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        with pytest.raises(ReferenceNotFound):
            uow.update_order_status(9999, "completed")
        uow.rollback()


# ---------------------------------------------------------------------------
# Rule B: agent availability
# ---------------------------------------------------------------------------


class TestAgentAvailabilityGuard:
    def test_idle_agent_accepts_order(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            placed = uow.place_order(_order(1006, agent_id=3))
        assert placed.id == 1006

    def test_busy_agent_rejects_order(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006, agent_id=1))

        uow = seeded_store.begin()
        with pytest.raises(ConstraintViolation, match="currently unavailable") as exc:
            uow.place_order(_order(1008, 107, agent_id=1))
        assert exc.value.detail["delivery_agent_id"] == 1
        uow.commit()
        assert _order_ids(seeded_store) == [1006]

    def test_rejection_within_same_unit_of_work(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.place_order(_order(1006, agent_id=1))
        with pytest.raises(ConstraintViolation):
            uow.place_order(_order(1008, 107, agent_id=1))
        # The rejected write left nothing behind; the first is still pending.
        assert uow.active
        assert [c.key for c in uow.changes if c.table == "orders"] == [1006]
        uow.commit()
        assert _order_ids(seeded_store) == [1006]

    def test_completed_order_still_counts(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006, agent_id=1))
            uow.update_order_status(1006, "completed")
        uow = seeded_store.begin()
        with pytest.raises(ConstraintViolation):
            uow.place_order(_order(1008, 107, agent_id=1))
        uow.rollback()

    def test_rejected_order_does_not_sync_address(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006, 106, 1, address="12 MG Road"))
        uow = seeded_store.begin()
        with pytest.raises(ConstraintViolation):
            uow.place_order(_order(1008, 107, 1, address="Somewhere Else"))
        uow.commit()
        assert _customer_address(seeded_store, 107) == "4 Park Street"

    def test_concurrent_orders_for_one_agent(self, seeded_store: Store) -> None:
        """Two writers racing for the same idle agent: exactly one wins."""
        barrier = threading.Barrier(2)
        outcomes: dict[int, str] = {}

        def place(order_id: int, customer_id: int) -> None:
            barrier.wait()
            try:
                with seeded_store.transaction() as uow:
                    uow.place_order(_order(order_id, customer_id, agent_id=2))
                outcomes[order_id] = "placed"
            except ConstraintViolation:
                outcomes[order_id] = "rejected"

        threads = [
            threading.Thread(target=place, args=(1006, 106)),
            threading.Thread(target=place, args=(1007, 107)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert sorted(outcomes.values()) == ["placed", "rejected"]
        assert len(_order_ids(seeded_store)) == 1


# ---------------------------------------------------------------------------
# Rule C: address sync
# ---------------------------------------------------------------------------


class TestAddressSync:
    def test_customer_address_follows_order(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006, 106, 1, address="77 Brigade Road"))
        assert _customer_address(seeded_store, 106) == "77 Brigade Road"

    def test_latest_order_wins(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006, 106, 1, address="First"))
            uow.place_order(_order(1007, 106, 2, address="Second"))
        assert _customer_address(seeded_store, 106) == "Second"

    def test_change_attributed_to_rule(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006, 106, 1, address="First"))
            changes = uow.changes
        assert [(c.action, c.table, c.rule) for c in changes] == [
            ("insert", "orders", None),
            ("update", "customers", "address_sync"),
        ]


# ---------------------------------------------------------------------------
# Checkpoints
# ---------------------------------------------------------------------------


class TestCheckpoints:
    def test_rollback_to_keeps_earlier_work(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.place_order(_order(1006, 106, 1))
        uow.savepoint("after_first")
        uow.place_order(_order(1007, 107, 2))
        uow.rollback_to("after_first")
        uow.commit()
        assert _order_ids(seeded_store) == [1006]

    def test_rollback_to_truncates_journal(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.place_order(_order(1006, 106, 1))
        mark = len(uow.changes)
        uow.savepoint("sp")
        uow.place_order(_order(1007, 107, 2))
        uow.rollback_to("sp")
        assert len(uow.changes) == mark
        uow.rollback()

    def test_rollback_to_reverts_rule_effects(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006))
            uow.add_payment(Payment(id=4, order_id=1006, amount=250, mode="card"))
        with seeded_store.transaction() as uow:
            uow.savepoint("before_complete")
            uow.update_order_status(1006, "completed")
            uow.rollback_to("before_complete")
        assert _payment_status(seeded_store, 1006) == "pending"

    def test_agent_free_again_after_rollback_to(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.savepoint("sp")
            uow.place_order(_order(1006, 106, 1))
            uow.rollback_to("sp")
            uow.place_order(_order(1007, 107, 1))
        assert _order_ids(seeded_store) == [1007]

    def test_checkpoint_survives_rollback_to(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.savepoint("sp")
        uow.place_order(_order(1006))
        uow.rollback_to("sp")
        uow.place_order(_order(1007))
        uow.rollback_to("sp")
        assert uow.checkpoints == ["sp"]
        uow.commit()
        assert _order_ids(seeded_store) == []

    def test_later_checkpoints_discarded(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.savepoint("a")
        uow.savepoint("b")
        uow.rollback_to("a")
        assert uow.checkpoints == ["a"]
        with pytest.raises(UnitOfWorkError, match="No such checkpoint"):
            uow.rollback_to("b")
        uow.rollback()

    def test_release_keeps_changes(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.savepoint("sp")
        uow.place_order(_order(1006))
        uow.release("sp")
        assert uow.checkpoints == []
        uow.commit()
        assert _order_ids(seeded_store) == [1006]

    def test_reused_name_targets_latest(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        uow.savepoint("sp")
        uow.place_order(_order(1006, 106, 1))
        uow.savepoint("sp")
        uow.place_order(_order(1007, 107, 2))
        uow.rollback_to("sp")
        uow.commit()
        assert _order_ids(seeded_store) == [1006]

    @pytest.mark.parametrize("name", ["", "1st", "has space", 'quo"te', "semi;colon"])
    def test_invalid_name(self, seeded_store: Store, name: str) -> None:
        uow = seeded_store.begin()
        with pytest.raises(UnitOfWorkError, match="Invalid checkpoint name"):
            uow.savepoint(name)
        uow.rollback()

    def test_unknown_checkpoint(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        with pytest.raises(UnitOfWorkError):
            uow.release("missing")
        uow.rollback()


# ---------------------------------------------------------------------------
# References and integrity
# ---------------------------------------------------------------------------


class TestReferences:
    def test_unknown_customer(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        with pytest.raises(ReferenceNotFound, match="customer") as exc:
            uow.place_order(_order(1006, customer_id=999))
        assert exc.value.code == "NOT_FOUND"
        uow.rollback()

    def test_unknown_agent(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        with pytest.raises(ReferenceNotFound, match="delivery agent"):
            uow.place_order(_order(1006, agent_id=99))
        uow.rollback()

    def test_payment_for_unknown_order(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        with pytest.raises(ReferenceNotFound):
            uow.add_payment(Payment(order_id=4242, amount=10, mode="cash"))
        uow.rollback()

    def test_duplicate_customer_id(self, seeded_store: Store) -> None:
        uow = seeded_store.begin()
        with pytest.raises(IntegrityError):
            uow.add_customer(Customer(id=106, name="Duplicate"))
        # Statement savepoint keeps the unit of work usable.
        created = uow.add_customer(Customer(name="Fresh"))
        uow.commit()
        assert created.id is not None

    def test_one_payment_per_order(self, seeded_store: Store) -> None:
        with seeded_store.transaction() as uow:
            uow.place_order(_order(1006))
            uow.add_payment(Payment(order_id=1006, amount=250, mode="upi"))
        uow = seeded_store.begin()
        with pytest.raises(IntegrityError):
            uow.add_payment(Payment(order_id=1006, amount=250, mode="cash"))
        uow.rollback()

    def test_generated_ids(self, store: Store) -> None:
        with store.transaction() as uow:
            customer = uow.add_customer(Customer(name="Asha"))
            agent = uow.add_agent(DeliveryAgent(name="Ravi"))
            order = uow.place_order(
                Order(customer_id=customer.id, delivery_agent_id=agent.id, total_amount=10)
            )
        assert order.id is not None
        with store.read() as conn:
            assert conn.execute(select(func.count()).select_from(orders)).scalar_one() == 1


# ---------------------------------------------------------------------------
# Rule failures
# ---------------------------------------------------------------------------


class _FailingAfterInsert:
    name = "failing"

    @hookimpl
    def after_order_insert(self, conn, order):
        raise RuntimeError("downstream write failed")


class TestRuleFailure:
    def test_failed_follow_on_write_aborts_insert(self, seeded_store: Store) -> None:
        rule = _FailingAfterInsert()
        seeded_store.rules.register_rule(rule)
        try:
            uow = seeded_store.begin()
            with pytest.raises(RuntimeError, match="downstream"):
                uow.place_order(_order(1006, address="Elsewhere"))
            assert uow.changes == []
            uow.commit()
        finally:
            seeded_store.rules.unregister(rule)
        assert _order_ids(seeded_store) == []
        assert _customer_address(seeded_store, 106) == "12 MG Road"


class TestStore:
    def test_paths(self, store: Store, store_root: Path) -> None:
        assert store.root == store_root
        assert store.db_path == store_root / ".deliveryctl" / "delivery.db"
        assert store.db_path.exists()

    def test_custom_completion_label(self, store_root: Path) -> None:
        settings = DeliverySettings.from_cli(
            store_root=store_root,
            rules={"completed_status": "delivered", "plugins": False},
        )
        store = Store(settings)
        try:
            with store.transaction() as uow:
                uow.add_customer(Customer(id=1, name="A"))
                uow.add_agent(DeliveryAgent(id=1, name="B"))
                uow.place_order(_order(10, 1, 1))
                uow.add_payment(Payment(order_id=10, amount=250, mode="cash"))
                uow.update_order_status(10, "completed")
                assert uow.get_payment_for_order(10).status == "pending"
                uow.update_order_status(10, "delivered")
                assert uow.get_payment_for_order(10).status == "completed"
        finally:
            store.close()
