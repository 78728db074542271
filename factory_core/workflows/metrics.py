from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.utils.timezone import now

from factory_core.models import DepartmentTracking, Order
from factory_core.workflows import COMPLETED
from factory_core.workflows.departments import DepartmentCatalog, get_catalog


def _records(order: Order) -> List[DepartmentTracking]:
    return list(order.tracking_records.order_by("sequence_order", "id"))


def compute_time_in_departments(order: Order) -> Dict[str, timedelta]:
    """
    Returns time spent working in each department.

    Example output:
    {
        "CAD": timedelta(hours=5),
        "PRINT": timedelta(hours=1, minutes=30),
    }

    Records that were never started are left out; unfinished ones count
    up to now.
    """

    durations: Dict[str, timedelta] = {}
    current = now()

    for record in _records(order):
        if record.started_at is None:
            continue
        end = record.completed_at or current
        durations[record.department] = end - record.started_at

    return durations


def total_gold_loss(order: Order) -> Decimal:
    return sum(
        (r.gold_loss for r in _records(order) if r.gold_loss is not None),
        Decimal("0"),
    )


def gold_ledger(order: Order) -> List[Dict[str, Any]]:
    """
    One row per department reached: weight in, weight out, loss.
    """
    return [
        {
            "department": r.department,
            "status": r.status,
            "gold_weight_in": r.gold_weight_in,
            "gold_weight_out": r.gold_weight_out,
            "gold_loss": r.gold_loss,
        }
        for r in _records(order)
    ]


def order_progress(order: Order, catalog: Optional[DepartmentCatalog] = None) -> Dict[str, Any]:
    catalog = catalog or get_catalog()
    records = _records(order)

    completed = sum(1 for r in records if r.status == COMPLETED)
    total = len(catalog)
    hours = sum(compute_time_in_departments(order).values(), timedelta()).total_seconds() / 3600

    return {
        "order_number": order.order_number,
        "status": order.status,
        "current_department": order.current_department,
        "total_departments": total,
        "completed_departments": completed,
        "percent_complete": round(completed * 100 / total, 1) if total else 0.0,
        "total_gold_loss": total_gold_loss(order),
        "total_hours": round(hours, 2),
    }
