# factory_core/services/dispatch.py

import logging
from typing import Any, Dict, Iterable, List, Optional

from factory_core.workflows.departments import normalize_department
from factory_core.workflows.engine import WorkflowEngine, build_engine, retry_on_conflict
from factory_core.workflows.errors import (
    AlreadyAssignedError,
    InvariantViolationError,
    WorkerUnavailableError,
    WorkflowError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# BULK ACTIVATION
# ---------------------------------------------------------------------

def bulk_send_to_factory(
    order_ids: Iterable[int],
    *,
    engine: Optional[WorkflowEngine] = None,
    performed_by=None,
) -> Dict[str, List[Any]]:
    """
    Send many DRAFT orders to the factory, one transaction per order.

    Never raises for business errors. Returns:
      {
        "success": [order_id, ...],
        "failed": [{"id": order_id, "error": "...", "code": "..."}]
      }

    Invariant violations are not business errors and propagate.
    """
    engine = engine or build_engine()
    results: Dict[str, List[Any]] = {"success": [], "failed": []}

    for order_id in order_ids:
        try:
            retry_on_conflict(engine.send_to_factory, order_id, performed_by=performed_by)
            results["success"].append(order_id)
        except InvariantViolationError:
            raise
        except WorkflowError as exc:
            results["failed"].append({"id": order_id, "error": str(exc), "code": exc.code})

    logger.info(
        "Bulk send to factory: %s sent, %s failed",
        len(results["success"]),
        len(results["failed"]),
    )
    return results


# ---------------------------------------------------------------------
# QUEUE DISPATCH
# ---------------------------------------------------------------------

def _dispatch_department(engine: WorkflowEngine, department: str) -> int:
    assigned = 0

    # Each pass assigns one entry or gives up; bounded by the queue depth
    for _ in range(engine.queue.depth(department)):
        worker = engine.directory.find_available(department)
        if worker is None:
            break

        head = engine.queue.next_for_worker(department)
        if head is None:
            break

        try:
            retry_on_conflict(engine.assign_worker, head.pk, worker.pk)
        except (WorkerUnavailableError, AlreadyAssignedError) as exc:
            logger.info("Dispatch skipped order %s in %s: %s", head.order.order_number, department, exc)
            continue

        assigned += 1

    return assigned


def dispatch_waiting_work(
    department: Optional[str] = None,
    *,
    engine: Optional[WorkflowEngine] = None,
) -> int:
    """
    Hand queue heads to free workers until either runs out.
    Returns the number of assignments made.
    """
    engine = engine or build_engine()
    departments = [normalize_department(department)] if department else engine.catalog.codes()

    total = 0
    for code in departments:
        count = _dispatch_department(engine, code)
        if count:
            logger.info("Dispatched %s waiting record(s) in %s", count, code)
        total += count

    return total
