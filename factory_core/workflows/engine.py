# factory_core/workflows/engine.py
from __future__ import annotations

"""
Department workflow state machine.

All tracking-record status changes MUST go through WorkflowEngine.
Never update DepartmentTracking.status in views, scripts or serializers.

Per-record states:

    NOT_STARTED -> PENDING_ASSIGNMENT -> IN_PROGRESS -> COMPLETED
                                          IN_PROGRESS <-> ON_HOLD
    IN_PROGRESS / ON_HOLD / assigned PENDING_ASSIGNMENT
        -> PENDING_ASSIGNMENT  (unassign)

Concurrency:
- every operation runs in one transaction.atomic() block
- rows are locked with select_for_update(); lock order is
  Order -> DepartmentTracking -> Worker -> DepartmentQueue
- tracking writes are compare-and-set on (status, version); a lost race
  raises ConcurrentModificationError
- events leave through transaction.on_commit, never inside the transaction
"""

import logging
import time
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Any, Callable, Dict, Iterable, Optional

from django.conf import settings
from django.db import connection, transaction
from django.db.models import F
from django.utils import timezone

from factory_core.models import DepartmentTracking, Order, OrderActivity, Worker
from factory_core.workflows import (
    COMPLETED,
    IN_PROGRESS,
    NOT_STARTED,
    ON_HOLD,
    ORDER_COMPLETED,
    ORDER_DRAFT,
    ORDER_IN_FACTORY,
    PENDING_ASSIGNMENT,
    validate_transition,
)
from factory_core.workflows.departments import DepartmentCatalog, get_catalog
from factory_core.workflows.directory import WorkerDirectory
from factory_core.workflows.errors import (
    AlreadyAssignedError,
    ConcurrentModificationError,
    DepartmentMismatchError,
    IllegalTransitionError,
    InvalidArgumentError,
    InvalidWeightError,
    InvariantViolationError,
    RecordNotFoundError,
    WorkerUnavailableError,
)
from factory_core.workflows.events import EventEmitter, EventSink, EventType, build_payload, load_sink
from factory_core.workflows.policy import configured_policy, cross_department_allowed, normalize_policy
from factory_core.workflows.queue import AssignmentQueue

logger = logging.getLogger(__name__)

WEIGHT_QUANTUM = Decimal("0.001")


def _workflow_setting(name: str, default: Any) -> Any:
    workflow = getattr(settings, "FACTORY_WORKFLOW", {}) or {}
    return workflow.get(name, default)


def to_weight(value: Any) -> Decimal:
    """Coerce a weight in grams to a 3-place Decimal."""
    if isinstance(value, bool) or value is None:
        raise InvalidWeightError(f"Invalid gold weight: {value!r}", details={"value": value})
    try:
        weight = Decimal(str(value)).quantize(WEIGHT_QUANTUM)
    except (InvalidOperation, ValueError):
        raise InvalidWeightError(f"Invalid gold weight: {value!r}", details={"value": str(value)}) from None
    if not weight.is_finite():
        raise InvalidWeightError(f"Invalid gold weight: {value!r}", details={"value": str(value)})
    return weight


# ===============================================================
# Retry helper
# ===============================================================

def retry_on_conflict(
    operation: Callable[..., Any],
    *args: Any,
    retries: int = 1,
    backoff: Optional[float] = None,
    **kwargs: Any,
) -> Any:
    """
    Run operation, retrying after ConcurrentModificationError.

    Only conflicts are retried; every other WorkflowError is final.
    After `retries` extra attempts the conflict is re-raised.
    """
    if backoff is None:
        backoff = float(_workflow_setting("RETRY_BACKOFF_SECONDS", 0.05))

    attempt = 0
    while True:
        try:
            return operation(*args, **kwargs)
        except ConcurrentModificationError:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning(
                "Concurrent modification in %s; retrying (%s/%s)",
                getattr(operation, "__name__", operation),
                attempt,
                retries,
            )
            time.sleep(backoff * attempt)


# ===============================================================
# Engine
# ===============================================================

class WorkflowEngine:
    """
    Advances orders through departments and manages assignments.

    Collaborators are injected once at process start (see build_engine):
      catalog   : DepartmentCatalog
      directory : WorkerDirectory
      sink      : EventSink receiving committed events
      policy    : cross-department assignment policy
    """

    def __init__(
        self,
        *,
        catalog: Optional[DepartmentCatalog] = None,
        directory: Optional[WorkerDirectory] = None,
        sink: Optional[EventSink] = None,
        policy: Optional[str] = None,
    ):
        self.catalog = catalog or get_catalog()
        self.directory = directory or WorkerDirectory()
        self.emitter = EventEmitter(sink if sink is not None else load_sink())
        self.queue = AssignmentQueue(self.directory, self.emitter)
        self.policy = normalize_policy(policy) if policy else configured_policy()

    # -----------------------------------------------------------
    # Locking / persistence helpers
    # -----------------------------------------------------------
    def _apply_lock_timeout(self) -> None:
        if connection.vendor != "postgresql":
            return
        timeout_ms = int(_workflow_setting("LOCK_TIMEOUT_MS", 0) or 0)
        if timeout_ms > 0:
            with connection.cursor() as cursor:
                cursor.execute("SELECT set_config('lock_timeout', %s, true)", [f"{timeout_ms}ms"])

    def _lock_order(self, order_id: int) -> Order:
        try:
            return Order.objects.select_for_update().get(pk=order_id)
        except Order.DoesNotExist:
            raise RecordNotFoundError(f"Order {order_id} not found", details={"order_id": order_id}) from None

    def _lock_tracking(self, tracking_id: int) -> DepartmentTracking:
        try:
            return DepartmentTracking.objects.select_for_update().get(pk=tracking_id)
        except DepartmentTracking.DoesNotExist:
            raise RecordNotFoundError(
                f"Tracking record {tracking_id} not found",
                details={"tracking_id": tracking_id},
            ) from None

    def _lock_tracking_with_order(self, tracking_id: int):
        order_id = (
            DepartmentTracking.objects.filter(pk=tracking_id)
            .values_list("order_id", flat=True)
            .first()
        )
        if order_id is None:
            raise RecordNotFoundError(
                f"Tracking record {tracking_id} not found",
                details={"tracking_id": tracking_id},
            )
        order = self._lock_order(order_id)
        record = self._lock_tracking(tracking_id)
        record.order = order
        return order, record

    def _write(self, record: DepartmentTracking, expected_status: str, now, **fields) -> DepartmentTracking:
        """
        Compare-and-set write. Succeeds only if status and version are
        unchanged since the record was read.
        """
        if "status" in fields:
            validate_transition("tracking", expected_status, fields["status"])

        updated = DepartmentTracking.objects.filter(
            pk=record.pk,
            status=expected_status,
            version=record.version,
        ).update(version=F("version") + 1, updated_at=now, **fields)

        if not updated:
            raise ConcurrentModificationError(
                f"Tracking record {record.pk} changed concurrently",
                details={
                    "tracking_id": record.pk,
                    "expected_status": expected_status,
                    "expected_version": record.version,
                },
            )

        order = record.order
        record.refresh_from_db()
        record.order = order
        return record

    def _require_status(self, record: DepartmentTracking, allowed: Iterable[str], operation: str) -> None:
        allowed = set(allowed)
        if record.status not in allowed:
            raise IllegalTransitionError(
                f"Cannot {operation} {record.department} for order {record.order.order_number}: "
                f"status is {record.status}",
                details={
                    "tracking_id": record.pk,
                    "status": record.status,
                    "allowed": sorted(allowed),
                },
            )

    def _invariant(self, message: str, **details: Any) -> InvariantViolationError:
        logger.critical("Workflow invariant violated: %s %s", message, details)
        return InvariantViolationError(message, details=details)

    def _activity(
        self,
        order: Order,
        action: str,
        title: str,
        *,
        department: str = "",
        worker_id: Optional[int] = None,
        performed_by=None,
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        OrderActivity.objects.create(
            order=order,
            action=action,
            title=title,
            description=description,
            department=department,
            worker_id=worker_id,
            performed_by=performed_by if getattr(performed_by, "is_authenticated", False) else None,
            metadata={k: (str(v) if isinstance(v, Decimal) else v) for k, v in (metadata or {}).items()},
        )

    def _emit(
        self,
        event_type: str,
        record_or_order,
        *,
        now,
        worker_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if isinstance(record_or_order, DepartmentTracking):
            order = record_or_order.order
            department = record_or_order.department
            tracking_id = record_or_order.pk
        else:
            order = record_or_order
            department = order.current_department
            tracking_id = None

        self.emitter.emit_after_commit(
            event_type,
            build_payload(
                order=order,
                department=department,
                worker_id=worker_id,
                tracking_id=tracking_id,
                metadata=metadata,
                now=now,
            ),
        )

    def _set_current_department(self, order: Order, department: Optional[str], now) -> None:
        updated = Order.objects.filter(pk=order.pk, status=ORDER_IN_FACTORY).update(
            current_department=department,
            updated_at=now,
        )
        if not updated:
            raise ConcurrentModificationError(
                f"Order {order.order_number} changed concurrently",
                details={"order_id": order.pk},
            )
        order.current_department = department

    # -----------------------------------------------------------
    # Order activation / advance
    # -----------------------------------------------------------
    def send_to_factory(self, order_id: int, *, performed_by=None) -> Order:
        """
        DRAFT -> IN_FACTORY, then create and queue the first department.
        """
        now = timezone.now()
        with transaction.atomic():
            self._apply_lock_timeout()
            order = self._lock_order(order_id)

            try:
                validate_transition("order", order.status, ORDER_IN_FACTORY)
            except IllegalTransitionError:
                raise IllegalTransitionError(
                    f"Order {order.order_number} is already {order.status}",
                    details={"order_id": order.pk, "status": order.status},
                ) from None

            updated = Order.objects.filter(pk=order.pk, status=ORDER_DRAFT).update(
                status=ORDER_IN_FACTORY,
                updated_at=now,
            )
            if not updated:
                raise ConcurrentModificationError(
                    f"Order {order.order_number} changed concurrently",
                    details={"order_id": order.pk},
                )
            order.status = ORDER_IN_FACTORY

            self._activity(
                order,
                OrderActivity.Action.STATUS_CHANGE,
                f"Status changed from {ORDER_DRAFT} to {ORDER_IN_FACTORY}",
                performed_by=performed_by,
                metadata={"from": ORDER_DRAFT, "to": ORDER_IN_FACTORY},
            )
            self._emit(EventType.ORDER_SENT_TO_FACTORY, order, now=now)

            self._advance(order, now=now, performed_by=performed_by)

        logger.info("Order %s sent to factory", order.order_number)
        return order

    def advance_order(self, order_id: int, *, performed_by=None) -> Optional[DepartmentTracking]:
        """
        Create the next department's tracking record, or finalize the order.

        Returns the new record, or None when the order was completed.
        """
        now = timezone.now()
        with transaction.atomic():
            self._apply_lock_timeout()
            order = self._lock_order(order_id)
            return self._advance(order, now=now, performed_by=performed_by)

    def _advance(self, order: Order, *, now, performed_by=None) -> Optional[DepartmentTracking]:
        if order.status != ORDER_IN_FACTORY:
            raise IllegalTransitionError(
                f"Order {order.order_number} is {order.status}; only IN_FACTORY orders advance",
                details={"order_id": order.pk, "status": order.status},
            )

        records = list(order.tracking_records.order_by("sequence_order"))

        if records:
            unfinished = [r.department for r in records if r.status != COMPLETED]
            if unfinished:
                raise self._invariant(
                    f"Cannot advance order {order.order_number}: {', '.join(unfinished)} not completed",
                    order_id=order.pk,
                    departments=unfinished,
                )
            latest = records[-1]
            if latest.gold_weight_out is None:
                raise self._invariant(
                    f"Completed {latest.department} for order {order.order_number} has no output weight",
                    order_id=order.pk,
                    tracking_id=latest.pk,
                )
            next_dept = self.catalog.next(latest.department)
            weight_in = latest.gold_weight_out
        else:
            next_dept = self.catalog.first()
            weight_in = order.gold_weight_initial

        if next_dept is None:
            return self._finalize(order, records, now=now, performed_by=performed_by)

        if any(r.department == next_dept.code for r in records):
            raise self._invariant(
                f"Order {order.order_number} already has a {next_dept.code} record",
                order_id=order.pk,
                department=next_dept.code,
            )

        record = DepartmentTracking.objects.create(
            order=order,
            department=next_dept.code,
            sequence_order=next_dept.sequence_index,
            status=NOT_STARTED,
            gold_weight_in=weight_in,
        )
        record.order = order

        self.queue.enqueue(record, now=now)
        record = self._write(record, NOT_STARTED, now, status=PENDING_ASSIGNMENT)
        self._set_current_department(order, next_dept.code, now)

        self._activity(
            order,
            OrderActivity.Action.DEPT_ENTERED,
            f"Entered {next_dept.display_name}",
            department=next_dept.code,
            performed_by=performed_by,
            metadata={"gold_weight_in": weight_in, "queue_position": record.queue_position},
        )
        self._emit(
            EventType.DEPARTMENT_ENTERED,
            record,
            now=now,
            metadata={"gold_weight_in": weight_in, "queue_position": record.queue_position},
        )

        logger.info(
            "Order %s advanced to %s (gold in %s)",
            order.order_number,
            next_dept.code,
            weight_in,
        )
        return record

    def _finalize(self, order: Order, records, *, now, performed_by=None) -> None:
        expected = self.catalog.codes()
        if [r.department for r in records] != expected:
            raise self._invariant(
                f"Order {order.order_number} reached the end of the pipeline without every department",
                order_id=order.pk,
                departments=[r.department for r in records],
                expected=expected,
            )

        updated = Order.objects.filter(pk=order.pk, status=ORDER_IN_FACTORY).update(
            status=ORDER_COMPLETED,
            completed_at=now,
            current_department=None,
            updated_at=now,
        )
        if not updated:
            raise ConcurrentModificationError(
                f"Order {order.order_number} changed concurrently",
                details={"order_id": order.pk},
            )
        order.status = ORDER_COMPLETED
        order.completed_at = now
        order.current_department = None

        total_loss = sum((r.gold_loss or Decimal("0")) for r in records)
        final_weight = records[-1].gold_weight_out

        self._activity(
            order,
            OrderActivity.Action.STATUS_CHANGE,
            f"Status changed from {ORDER_IN_FACTORY} to {ORDER_COMPLETED}",
            performed_by=performed_by,
            metadata={
                "from": ORDER_IN_FACTORY,
                "to": ORDER_COMPLETED,
                "total_gold_loss": total_loss,
                "final_gold_weight": final_weight,
            },
        )
        self._emit(
            EventType.ORDER_COMPLETED,
            order,
            now=now,
            metadata={"total_gold_loss": total_loss, "final_gold_weight": final_weight},
        )

        logger.info("Order %s completed; total gold loss %s", order.order_number, total_loss)
        return None

    # -----------------------------------------------------------
    # Assignment
    # -----------------------------------------------------------
    def assign_worker(
        self,
        tracking_id: int,
        worker_id: int,
        *,
        override: bool = False,
        performed_by=None,
        reassignment: bool = False,
    ) -> DepartmentTracking:
        now = timezone.now()
        with transaction.atomic():
            self._apply_lock_timeout()
            order, record = self._lock_tracking_with_order(tracking_id)

            self._require_status(record, {PENDING_ASSIGNMENT}, "assign a worker to")
            if record.assigned_worker_id is not None:
                raise AlreadyAssignedError(
                    f"{record.department} for order {order.order_number} is already assigned "
                    f"to worker {record.assigned_worker_id}",
                    details={"tracking_id": record.pk, "worker_id": record.assigned_worker_id},
                )

            worker = self.directory.lock(worker_id)
            if not worker.is_active or worker.availability_status != Worker.Availability.AVAILABLE:
                raise WorkerUnavailableError(
                    f"Worker {worker.name} is {worker.availability_status if worker.is_active else 'inactive'}",
                    details={"worker_id": worker.pk, "availability": worker.availability_status},
                )

            cross_department = worker.department != record.department
            if cross_department:
                if not cross_department_allowed(self.policy, override=override):
                    raise DepartmentMismatchError(
                        f"Worker {worker.name} belongs to {worker.department}, not {record.department}",
                        details={
                            "worker_id": worker.pk,
                            "worker_department": worker.department,
                            "department": record.department,
                            "policy": self.policy,
                        },
                    )
                logger.warning(
                    "Cross-department assignment: worker %s (%s) -> %s for order %s (policy=%s, override=%s, by=%s)",
                    worker.pk,
                    worker.department,
                    record.department,
                    order.order_number,
                    self.policy,
                    override,
                    getattr(performed_by, "pk", None),
                )

            previous_position = record.queue_position
            self.directory.mark_busy(worker.pk, now=now)
            record = self._write(
                record,
                PENDING_ASSIGNMENT,
                now,
                assigned_worker=worker,
                queue_position=None,
            )
            self.queue.reindex(record.department)

            action = (
                OrderActivity.Action.WORKER_REASSIGNED
                if reassignment
                else OrderActivity.Action.WORKER_ASSIGNED
            )
            self._activity(
                order,
                action,
                f"{'Reassigned' if reassignment else 'Assigned'} to {worker.name}",
                department=record.department,
                worker_id=worker.pk,
                performed_by=performed_by,
                metadata={
                    "cross_department": cross_department,
                    "override": bool(override),
                    "queue_position": previous_position,
                },
            )
            self._emit(
                EventType.ASSIGNMENT_CREATED,
                record,
                now=now,
                worker_id=worker.pk,
                metadata={
                    "worker_name": worker.name,
                    "reassignment": reassignment,
                    "cross_department": cross_department,
                    "urgent": order.priority >= Order.Priority.URGENT,
                },
            )

        logger.info("Assigned %s of order %s to worker %s", record.department, order.order_number, worker.pk)
        return record

    def unassign(self, tracking_id: int, *, performed_by=None, reason: str = "") -> DepartmentTracking:
        now = timezone.now()
        with transaction.atomic():
            self._apply_lock_timeout()
            order, record = self._lock_tracking_with_order(tracking_id)

            self._require_status(record, {PENDING_ASSIGNMENT, IN_PROGRESS, ON_HOLD}, "unassign")
            if record.assigned_worker_id is None:
                raise IllegalTransitionError(
                    f"{record.department} for order {order.order_number} has no assigned worker",
                    details={"tracking_id": record.pk},
                )

            worker_id = record.assigned_worker_id
            previous_status = record.status

            self.directory.mark_available(worker_id)
            self.queue.enqueue(record, requeue=True, now=now)
            record = self._write(
                record,
                previous_status,
                now,
                status=PENDING_ASSIGNMENT,
                assigned_worker=None,
                hold_reason="",
            )

            self._activity(
                order,
                OrderActivity.Action.WORKER_UNASSIGNED,
                f"Worker unassigned from {record.department}",
                department=record.department,
                worker_id=worker_id,
                performed_by=performed_by,
                description=reason,
                metadata={"from_status": previous_status, "queue_position": record.queue_position},
            )
            self._emit(
                EventType.WORKER_UNASSIGNED,
                record,
                now=now,
                worker_id=worker_id,
                metadata={"from_status": previous_status, "reason": reason},
            )

        # Only logged once the unassignment commits
        transaction.on_commit(
            partial(
                logger.info,
                "Unassigned worker %s from %s of order %s",
                worker_id,
                record.department,
                order.order_number,
            )
        )
        return record

    def reassign_worker(
        self,
        tracking_id: int,
        worker_id: int,
        *,
        override: bool = False,
        performed_by=None,
    ) -> DepartmentTracking:
        """
        Hand a record to another worker in one transaction. The record goes
        back to PENDING_ASSIGNMENT with the new assignee; work restarts with
        start_work.
        """
        with transaction.atomic():
            current = (
                DepartmentTracking.objects.filter(pk=tracking_id)
                .values_list("assigned_worker_id", flat=True)
                .first()
            )
            if current == worker_id:
                raise AlreadyAssignedError(
                    f"Tracking record {tracking_id} is already assigned to worker {worker_id}",
                    details={"tracking_id": tracking_id, "worker_id": worker_id},
                )
            if current is not None:
                self.unassign(tracking_id, performed_by=performed_by, reason="reassignment")
            return self.assign_worker(
                tracking_id,
                worker_id,
                override=override,
                performed_by=performed_by,
                reassignment=True,
            )

    # -----------------------------------------------------------
    # Work lifecycle
    # -----------------------------------------------------------
    def start_work(self, tracking_id: int, *, worker_id: Optional[int] = None, performed_by=None) -> DepartmentTracking:
        """
        PENDING_ASSIGNMENT (assigned) -> IN_PROGRESS.

        Idempotent: a record already IN_PROGRESS with the same worker is
        returned unchanged.
        """
        now = timezone.now()
        with transaction.atomic():
            self._apply_lock_timeout()
            order, record = self._lock_tracking_with_order(tracking_id)

            if worker_id is not None and record.assigned_worker_id not in (None, worker_id):
                raise IllegalTransitionError(
                    f"{record.department} for order {order.order_number} is assigned to another worker",
                    details={"tracking_id": record.pk, "worker_id": worker_id},
                )

            if record.status == IN_PROGRESS:
                return record

            self._require_status(record, {PENDING_ASSIGNMENT}, "start")
            if record.assigned_worker_id is None:
                raise IllegalTransitionError(
                    f"{record.department} for order {order.order_number} has no assigned worker",
                    details={"tracking_id": record.pk},
                )

            record = self._write(
                record,
                PENDING_ASSIGNMENT,
                now,
                status=IN_PROGRESS,
                started_at=record.started_at or now,
            )

            self._activity(
                order,
                OrderActivity.Action.WORK_STARTED,
                f"Work started in {record.department}",
                department=record.department,
                worker_id=record.assigned_worker_id,
                performed_by=performed_by,
            )
            self._emit(EventType.WORK_STARTED, record, now=now, worker_id=record.assigned_worker_id)

        logger.info("Work started on %s of order %s", record.department, order.order_number)
        return record

    def complete_work(
        self,
        tracking_id: int,
        gold_weight_out: Any,
        notes: str = "",
        photos: Iterable[str] = (),
        *,
        performed_by=None,
    ) -> DepartmentTracking:
        """
        IN_PROGRESS -> COMPLETED, release the worker, then advance the order.

        Gold cannot be created: gold_weight_out above gold_weight_in is
        rejected, never clamped.
        """
        weight_out = to_weight(gold_weight_out)
        photos = [str(p) for p in photos]
        now = timezone.now()

        with transaction.atomic():
            self._apply_lock_timeout()
            order, record = self._lock_tracking_with_order(tracking_id)

            self._require_status(record, {IN_PROGRESS}, "complete")
            if record.assigned_worker_id is None:
                raise IllegalTransitionError(
                    f"{record.department} for order {order.order_number} has no assigned worker",
                    details={"tracking_id": record.pk},
                )

            if weight_out < 0 or weight_out > record.gold_weight_in:
                raise InvalidWeightError(
                    f"Gold weight out {weight_out} must be between 0 and weight in {record.gold_weight_in}",
                    details={
                        "tracking_id": record.pk,
                        "gold_weight_in": str(record.gold_weight_in),
                        "gold_weight_out": str(weight_out),
                    },
                )

            gold_loss = record.gold_weight_in - weight_out
            worker_id = record.assigned_worker_id

            record = self._write(
                record,
                IN_PROGRESS,
                now,
                status=COMPLETED,
                gold_weight_out=weight_out,
                gold_loss=gold_loss,
                completed_at=now,
                notes=notes or record.notes,
                photos=list(record.photos or []) + photos,
            )
            self.directory.mark_available(worker_id)

            next_dept = self.catalog.next(record.department)
            self._activity(
                order,
                OrderActivity.Action.DEPT_COMPLETED,
                f"Completed {record.department}",
                department=record.department,
                worker_id=worker_id,
                performed_by=performed_by,
                metadata={
                    "gold_weight_in": record.gold_weight_in,
                    "gold_weight_out": weight_out,
                    "gold_loss": gold_loss,
                    "next_department": next_dept.code if next_dept else None,
                },
            )
            self._emit(
                EventType.WORK_COMPLETED,
                record,
                now=now,
                worker_id=worker_id,
                metadata={
                    "gold_weight_in": record.gold_weight_in,
                    "gold_weight_out": weight_out,
                    "gold_loss": gold_loss,
                },
            )

            self._advance(order, now=now, performed_by=performed_by)

        logger.info(
            "Completed %s of order %s (in %s, out %s, loss %s)",
            record.department,
            order.order_number,
            record.gold_weight_in,
            weight_out,
            gold_loss,
        )
        return record

    def put_on_hold(self, tracking_id: int, reason: str, *, performed_by=None) -> DepartmentTracking:
        reason = (reason or "").strip()
        if not reason:
            raise InvalidArgumentError(
                "A reason is required to put work on hold",
                details={"tracking_id": tracking_id},
            )

        now = timezone.now()
        with transaction.atomic():
            self._apply_lock_timeout()
            order, record = self._lock_tracking_with_order(tracking_id)

            self._require_status(record, {IN_PROGRESS}, "put on hold")
            record = self._write(record, IN_PROGRESS, now, status=ON_HOLD, hold_reason=reason[:500])

            self._activity(
                order,
                OrderActivity.Action.ON_HOLD,
                f"{record.department} put on hold",
                department=record.department,
                worker_id=record.assigned_worker_id,
                performed_by=performed_by,
                description=reason,
            )
            self._emit(
                EventType.WORK_ON_HOLD,
                record,
                now=now,
                worker_id=record.assigned_worker_id,
                metadata={"reason": reason},
            )

        logger.info("%s of order %s put on hold: %s", record.department, order.order_number, reason)
        return record

    def resume_from_hold(self, tracking_id: int, *, performed_by=None) -> DepartmentTracking:
        now = timezone.now()
        with transaction.atomic():
            self._apply_lock_timeout()
            order, record = self._lock_tracking_with_order(tracking_id)

            self._require_status(record, {ON_HOLD}, "resume")
            record = self._write(record, ON_HOLD, now, status=IN_PROGRESS, hold_reason="")

            self._activity(
                order,
                OrderActivity.Action.RESUMED,
                f"{record.department} resumed",
                department=record.department,
                worker_id=record.assigned_worker_id,
                performed_by=performed_by,
            )
            self._emit(EventType.WORK_RESUMED, record, now=now, worker_id=record.assigned_worker_id)

        logger.info("%s of order %s resumed", record.department, order.order_number)
        return record


# ===============================================================
# Process-wide construction
# ===============================================================

def build_engine(**overrides: Any) -> WorkflowEngine:
    """
    Engine wired from settings. Keyword overrides replace individual
    collaborators (catalog, directory, sink, policy).
    """
    return WorkflowEngine(**overrides)


__all__ = [
    "WorkflowEngine",
    "build_engine",
    "retry_on_conflict",
    "to_weight",
]
