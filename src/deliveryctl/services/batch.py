"""BatchService — run a scripted sequence of steps as one unit of work.

A script is a list of step objects, each with an ``op`` key:

- record writes: ``add_customer``, ``add_agent``, ``place_order``,
  ``update_order_status``, ``add_payment``
- checkpoints: ``savepoint``, ``rollback_to``, ``release`` (with ``name``)
- terminators: ``commit`` or ``rollback``, only as the final step

Without a terminator the script commits. The first failing step aborts
the whole unit of work.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from deliveryctl.domain.models import Customer, DeliveryAgent, Order, Payment
from deliveryctl.services.base import EXPECTED_ERRORS, BaseService
from deliveryctl.services.orders import with_customer_address
from deliveryctl.services.result import ServiceResult

if TYPE_CHECKING:
    from deliveryctl.infrastructure.store import UnitOfWork

logger = logging.getLogger(__name__)

_TERMINATORS = frozenset({"commit", "rollback"})


def _checkpoint_name(step: dict[str, Any]) -> str:
    name = step.get("name")
    if not isinstance(name, str) or not name:
        msg = f"Step {step['op']!r} requires a non-empty 'name'"
        raise ValueError(msg)
    return name


def _fields(step: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in step.items() if k != "op"}


def _add_customer(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    return {"id": uow.add_customer(Customer.model_validate(_fields(step))).id}


def _add_agent(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    return {"id": uow.add_agent(DeliveryAgent.model_validate(_fields(step))).id}


def _place_order(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    order = with_customer_address(uow, Order.model_validate(_fields(step)))
    return {"id": uow.place_order(order).id}


def _update_order_status(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    order_id = step.get("order_id")
    status = step.get("status")
    if not isinstance(order_id, int) or not isinstance(status, str):
        msg = "Step 'update_order_status' requires integer 'order_id' and string 'status'"
        raise ValueError(msg)
    updated = uow.update_order_status(order_id, status)
    return {"id": updated.id, "status": updated.status}


def _add_payment(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    return {"id": uow.add_payment(Payment.model_validate(_fields(step))).id}


def _savepoint(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    name = _checkpoint_name(step)
    uow.savepoint(name)
    return {"name": name}


def _rollback_to(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    name = _checkpoint_name(step)
    uow.rollback_to(name)
    return {"name": name}


def _release(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    name = _checkpoint_name(step)
    uow.release(name)
    return {"name": name}


def _commit(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    uow.commit()
    return {}


def _rollback(uow: UnitOfWork, step: dict[str, Any]) -> dict[str, Any]:
    uow.rollback()
    return {}


_STEP_HANDLERS: dict[str, Callable[[UnitOfWork, dict[str, Any]], dict[str, Any]]] = {
    "add_customer": _add_customer,
    "add_agent": _add_agent,
    "place_order": _place_order,
    "update_order_status": _update_order_status,
    "add_payment": _add_payment,
    "savepoint": _savepoint,
    "rollback_to": _rollback_to,
    "release": _release,
    "commit": _commit,
    "rollback": _rollback,
}

STEP_OPS = tuple(_STEP_HANDLERS)


class BatchService(BaseService):
    """Executes batch scripts against the store."""

    def run(self, steps: list[Any]) -> ServiceResult:
        """Run *steps* in a single unit of work."""
        op = "batch"

        problem = _validate_script(steps)
        if problem is not None:
            index, message = problem
            return ServiceResult.failure(
                op, "INVALID_STEP", f"Step {index}: {message}", step=index
            )

        executed: list[dict[str, Any]] = []
        current = 0
        try:
            with self._store.transaction() as uow:
                for current, step in enumerate(steps):
                    with structlog.contextvars.bound_contextvars(batch_step=current):
                        outcome = _STEP_HANDLERS[step["op"]](uow, step)
                    executed.append({"step": current, "op": step["op"], **outcome})
                    logger.debug("Batch step %d (%s) applied", current, step["op"])
                changes = uow.changes
            state = uow.state
        except ValueError as exc:
            return ServiceResult.failure(
                op, "INVALID_STEP", f"Step {current}: {exc}", step=current
            )
        except EXPECTED_ERRORS as exc:
            return self._failure(op, exc, step=current, step_op=steps[current]["op"])

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "committed": state == "committed",
                "state": state,
                "steps": executed,
                "changes": [c.to_dict() for c in changes],
            },
        )


def _validate_script(steps: list[Any]) -> tuple[int, str] | None:
    """Return ``(index, message)`` for the first malformed step, else None."""
    if not isinstance(steps, list):
        return 0, "script must be a JSON array of step objects"
    for index, step in enumerate(steps):
        if not isinstance(step, dict):
            return index, "step must be an object"
        step_op = step.get("op")
        if step_op not in _STEP_HANDLERS:
            return index, f"unknown op {step_op!r}; expected one of {sorted(STEP_OPS)}"
        if step_op in _TERMINATORS and index != len(steps) - 1:
            return index, f"{step_op!r} must be the last step"
    return None
