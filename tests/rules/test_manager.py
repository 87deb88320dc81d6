"""Tests for RuleManager — registration, discovery, and explicit dispatch."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy.engine import Engine

from deliveryctl.domain.changes import Change
from deliveryctl.domain.errors import ConstraintViolation
from deliveryctl.domain.models import Order
from deliveryctl.rules.hookspecs import hookimpl
from deliveryctl.rules.manager import ENTRY_POINT_GROUP, RuleManager


class _RecordingRule:
    name = "recording"

    def __init__(self) -> None:
        self.seen: list[str] = []

    @hookimpl
    def validate_order_insert(self, conn, order):
        self.seen.append(f"validate:{order.id}")

    @hookimpl
    def after_order_insert(self, conn, order):
        self.seen.append(f"insert:{order.id}")
        return Change("insert", "audit", order.id, rule=self.name)


class _MinimumTotalRule:
    """Extra rule shipped as a class (as entry-point loading may register it)."""

    @hookimpl
    def validate_order_insert(self, conn, order):
        if order.total_amount < 100:
            raise ConstraintViolation("Order total below minimum", order_id=order.id)


def _order(order_id: int = 1006, **kwargs) -> Order:
    kwargs.setdefault("total_amount", 250)
    return Order(id=order_id, customer_id=106, delivery_agent_id=1, **kwargs)


class TestRegistration:
    def test_builtins_registered(self) -> None:
        names = RuleManager().list_rule_names()
        assert set(names) == {
            "agent_availability_guard",
            "address_sync",
            "payment_status_propagation",
        }

    def test_register_and_unregister(self) -> None:
        rm = RuleManager()
        rule = _RecordingRule()
        rm.register_rule(rule)
        assert "recording" in rm.list_rule_names()
        rm.unregister(rule)
        assert "recording" not in rm.list_rule_names()

    def test_register_default_name(self) -> None:
        rm = RuleManager()
        rm.register_rule(_MinimumTotalRule())
        assert "_MinimumTotalRule" in rm.list_rule_names()

    def test_discover_uses_entry_point_group(self) -> None:
        rm = RuleManager()
        with patch.object(rm._pm, "load_setuptools_entrypoints") as load:
            rm.discover_plugins()
        load.assert_called_once_with(ENTRY_POINT_GROUP)

    def test_discover_instantiates_classes(self, db_engine: Engine) -> None:
        rm = RuleManager()

        def fake_load(group: str) -> int:
            rm._pm.register(_MinimumTotalRule, name="minimum_total")
            return 1

        with patch.object(rm._pm, "load_setuptools_entrypoints", side_effect=fake_load):
            names = rm.discover_plugins()
        assert "minimum_total" in names
        with db_engine.connect() as conn, pytest.raises(ConstraintViolation, match="minimum"):
            rm.before_insert(conn, _order(total_amount=50))


class TestDispatch:
    def test_before_insert_reaches_rules(self, db_engine: Engine) -> None:
        rm = RuleManager()
        rule = _RecordingRule()
        rm.register_rule(rule)
        with db_engine.connect() as conn:
            rm.before_insert(conn, _order())
        assert rule.seen == ["validate:1006"]

    def test_after_insert_collects_changes(self, db_engine: Engine) -> None:
        rm = RuleManager()
        rm.register_rule(_RecordingRule())
        with db_engine.connect() as conn:
            changes = rm.after_insert(conn, _order())
        rules = sorted(c.rule for c in changes)
        assert rules == ["address_sync", "recording"]

    def test_after_update_non_completion(self, db_engine: Engine) -> None:
        rm = RuleManager()
        before = _order()
        after = before.model_copy(update={"status": "preparing"})
        with db_engine.connect() as conn:
            assert rm.after_update(conn, before, after) == []
