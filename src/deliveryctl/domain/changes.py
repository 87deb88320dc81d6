"""Change journal entries recorded by a unit of work."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Change:
    """One applied write.

    Attributes:
        action: ``insert`` or ``update``.
        table: Table the write touched.
        key: Primary key (or match key) of the affected row(s).
        rows: Number of rows affected.
        rule: Name of the rule that issued the write, None for direct writes.
    """

    action: str
    table: str
    key: int | None
    rows: int = 1
    rule: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "action": self.action,
            "table": self.table,
            "key": self.key,
            "rows": self.rows,
        }
        if self.rule is not None:
            data["rule"] = self.rule
        return data
