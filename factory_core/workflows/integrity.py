# factory_core/workflows/integrity.py
from __future__ import annotations

import logging
from typing import List, Optional

from django.db.models import Count

from factory_core.models import DepartmentTracking, Order, Worker
from factory_core.workflows import COMPLETED, IN_PROGRESS, ON_HOLD, ORDER_COMPLETED, ORDER_DRAFT, PENDING_ASSIGNMENT
from factory_core.workflows.departments import DepartmentCatalog, get_catalog, normalize_department

"""
Read-only consistency checks over stored workflow state.

Each check returns a list of human-readable violations; an empty list means
the stored state is consistent. Nothing here repairs data.
"""

logger = logging.getLogger(__name__)


def derive_current_department(order: Order) -> Optional[str]:
    """
    Department of the first tracking record that is not completed,
    or None when there is none.
    """
    record = (
        order.tracking_records.exclude(status=COMPLETED)
        .order_by("sequence_order")
        .first()
    )
    return record.department if record else None


def check_order_integrity(order: Order, catalog: Optional[DepartmentCatalog] = None) -> List[str]:
    order = Order.objects.get(pk=order.pk)
    catalog = catalog or get_catalog()
    errors: List[str] = []
    label = order.order_number

    records = list(order.tracking_records.order_by("sequence_order", "id"))

    if order.status == ORDER_DRAFT and records:
        errors.append(f"{label}: draft order has {len(records)} tracking record(s)")

    # Records follow the catalog from the first department without gaps
    expected = catalog.codes()[: len(records)]
    actual = [r.department for r in records]
    if actual != expected:
        errors.append(f"{label}: departments {actual} do not follow the pipeline {expected}")

    previous = None
    for record in records:
        if record.status == COMPLETED:
            if record.gold_weight_out is None or record.gold_loss is None:
                errors.append(f"{label}/{record.department}: completed without output weight")
            elif record.gold_weight_out != record.gold_weight_in - record.gold_loss:
                errors.append(
                    f"{label}/{record.department}: weight out {record.gold_weight_out} != "
                    f"in {record.gold_weight_in} - loss {record.gold_loss}"
                )

        if previous is None:
            if record.gold_weight_in != order.gold_weight_initial:
                errors.append(
                    f"{label}/{record.department}: weight in {record.gold_weight_in} != "
                    f"initial {order.gold_weight_initial}"
                )
        else:
            if previous.status != COMPLETED:
                errors.append(
                    f"{label}/{record.department}: exists while {previous.department} is {previous.status}"
                )
            elif record.gold_weight_in != previous.gold_weight_out:
                errors.append(
                    f"{label}/{record.department}: weight in {record.gold_weight_in} != "
                    f"{previous.department} weight out {previous.gold_weight_out}"
                )

        if record.status in (IN_PROGRESS, ON_HOLD) and record.assigned_worker_id is None:
            errors.append(f"{label}/{record.department}: {record.status} without an assigned worker")

        if record.queue_position is not None and (
            record.status != PENDING_ASSIGNMENT or record.assigned_worker_id is not None
        ):
            errors.append(f"{label}/{record.department}: holds queue position while not waiting")

        previous = record

    all_completed = len(records) == len(catalog) and all(r.status == COMPLETED for r in records)
    if (order.status == ORDER_COMPLETED) != all_completed:
        errors.append(
            f"{label}: order is {order.status} but "
            f"{sum(1 for r in records if r.status == COMPLETED)}/{len(catalog)} departments are completed"
        )

    derived = derive_current_department(order)
    if order.current_department != derived:
        errors.append(f"{label}: current_department {order.current_department!r} != derived {derived!r}")

    return errors


def check_queue_integrity(department: str) -> List[str]:
    department = normalize_department(department)
    errors: List[str] = []

    waiting = list(
        DepartmentTracking.objects.filter(
            department=department,
            status=PENDING_ASSIGNMENT,
            assigned_worker__isnull=True,
        )
        .select_related("order")
        .order_by("queue_position", "queued_at", "id")
    )

    unqueued = [r for r in waiting if r.queue_position is None]
    for record in unqueued:
        errors.append(f"{department}: order {record.order.order_number} waits without a queue position")

    positions = [r.queue_position for r in waiting if r.queue_position is not None]
    if positions != list(range(1, len(positions) + 1)):
        errors.append(f"{department}: queue positions {positions} are not contiguous from 1")

    return errors


def check_worker_integrity() -> List[str]:
    errors: List[str] = []

    overloaded = (
        DepartmentTracking.objects.filter(status=IN_PROGRESS, assigned_worker__isnull=False)
        .values("assigned_worker")
        .annotate(n=Count("id"))
        .filter(n__gt=1)
    )
    for row in overloaded:
        errors.append(f"worker {row['assigned_worker']}: {row['n']} records IN_PROGRESS")

    busy_idle = Worker.objects.filter(availability_status=Worker.Availability.BUSY).exclude(
        assignments__status__in=[PENDING_ASSIGNMENT, IN_PROGRESS, ON_HOLD]
    )
    for worker in busy_idle:
        errors.append(f"worker {worker.pk}: BUSY without an open assignment")

    return errors


def check_all(catalog: Optional[DepartmentCatalog] = None) -> List[str]:
    catalog = catalog or get_catalog()
    errors: List[str] = []

    for order in Order.objects.exclude(status=ORDER_DRAFT).order_by("id"):
        errors.extend(check_order_integrity(order, catalog))

    for code in catalog.codes():
        errors.extend(check_queue_integrity(code))

    errors.extend(check_worker_integrity())

    if errors:
        logger.error("Workflow integrity check found %s violation(s)", len(errors))
    return errors
