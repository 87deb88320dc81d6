"""Rule registration and explicit hook dispatch.

Built-in rules are always registered. Extra rules can be shipped as
pip-installed plugins exposing the ``deliveryctl.rules`` entry-point
group; they are loaded with pluggy's native setuptools discovery.

Hooks are called by the unit of work, never by ambient dispatch, and
exceptions raised by a rule propagate to the caller unchanged.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

import pluggy

from deliveryctl.domain.lifecycle import OrderStatus
from deliveryctl.rules.builtins import builtin_rules
from deliveryctl.rules.hookspecs import PROJECT_NAME, OrderRuleSpec

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from deliveryctl.domain.changes import Change
    from deliveryctl.domain.models import Order

ENTRY_POINT_GROUP = "deliveryctl.rules"

logger = logging.getLogger(__name__)


class RuleManager:
    """Holds the registered order rules and fires them around order writes."""

    def __init__(
        self,
        *,
        completed_status: str = OrderStatus.COMPLETED,
        load_plugins: bool = False,
    ) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(OrderRuleSpec)
        for rule in builtin_rules(completed_status=completed_status):
            self.register_rule(rule)
        if load_plugins:
            self.discover_plugins()

    def discover_plugins(self) -> list[str]:
        """Load rule plugins from the ``deliveryctl.rules`` entry-point group.

        Returns the names of all registered rules afterwards.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        return self.list_rule_names()

    def register_rule(self, rule: object, name: str | None = None) -> None:
        """Register a rule instance directly."""
        resolved_name = name or getattr(rule, "name", None) or rule.__class__.__name__
        self._pm.register(rule, name=resolved_name)
        logger.debug("Registered rule: %s", resolved_name)

    def unregister(self, rule: object) -> None:
        """Unregister a rule instance."""
        self._pm.unregister(rule)

    def list_rule_names(self) -> list[str]:
        """Return names of all registered rules."""
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Dispatch — called by the unit of work
    # ------------------------------------------------------------------

    def before_insert(self, conn: Connection, order: Order) -> None:
        """Run pre-insert validation. Any rule may raise to reject."""
        self._pm.hook.validate_order_insert(conn=conn, order=order)

    def after_insert(self, conn: Connection, order: Order) -> list[Change]:
        """Run post-insert rules, returning the follow-on changes they made."""
        return list(self._pm.hook.after_order_insert(conn=conn, order=order))

    def after_update(self, conn: Connection, before: Order, after: Order) -> list[Change]:
        """Run post-update rules, returning the follow-on changes they made."""
        return list(self._pm.hook.after_order_update(conn=conn, before=before, after=after))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _normalize_plugin_instances(self) -> None:
        """Replace registered rule classes with instantiated objects.

        Entry-point loading may register a class directly; hook dispatch
        against a class object leaves ``self`` unbound.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue
            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            self._pm.register(plugin(), name=plugin_name)
            logger.debug("Instantiated entry-point rule: %s", plugin_name)
