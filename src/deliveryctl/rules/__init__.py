"""Order rules — pluggy hooks fired by the unit of work around order writes.

INVARIANT: Rule failures are errors. They propagate out of the write
and abort the statement that triggered them.
"""

from deliveryctl.rules.manager import RuleManager

__all__ = ["RuleManager"]
