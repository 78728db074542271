# factory_core/workflows/queue.py
from __future__ import annotations

import logging
from typing import List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from factory_core.models import DepartmentQueue, DepartmentTracking
from factory_core.workflows import (
    IN_PROGRESS,
    NOT_STARTED,
    ON_HOLD,
    PENDING_ASSIGNMENT,
)
from factory_core.workflows.departments import normalize_department
from factory_core.workflows.directory import WorkerDirectory
from factory_core.workflows.errors import InvalidStateError
from factory_core.workflows.events import EventEmitter, EventType, build_payload

logger = logging.getLogger(__name__)


ENQUEUEABLE_STATES = {NOT_STARTED, ON_HOLD}

# Records handed back by an explicit unassignment
REQUEUEABLE_STATES = ENQUEUEABLE_STATES | {IN_PROGRESS, PENDING_ASSIGNMENT}


class AssignmentQueue:
    """
    Per-department queue of tracking records waiting for a worker.

    Queue entries are PENDING_ASSIGNMENT records holding a queue_position.
    Positions are contiguous from 1 and follow (priority desc, queued_at asc).

    Every operation locks the department's DepartmentQueue row first, so
    operations on one department are serialized while different
    departments proceed in parallel.

    The queue writes only queue_position / queued_at. Status changes belong
    to WorkflowEngine, which calls enqueue() before moving the record to
    PENDING_ASSIGNMENT in the same transaction.
    """

    def __init__(self, directory: WorkerDirectory, emitter: EventEmitter):
        self.directory = directory
        self.emitter = emitter

    # -----------------------------------------------------------
    # Internals
    # -----------------------------------------------------------
    def _lock(self, department: str) -> DepartmentQueue:
        DepartmentQueue.objects.get_or_create(department=department)
        return DepartmentQueue.objects.select_for_update().get(department=department)

    def _pending(self, department: str):
        return DepartmentTracking.objects.filter(
            department=department,
            status=PENDING_ASSIGNMENT,
            queue_position__isnull=False,
        )

    # -----------------------------------------------------------
    # Public API
    # -----------------------------------------------------------
    def enqueue(self, record: DepartmentTracking, *, requeue: bool = False, now=None) -> int:
        """
        Give the record a queue position and return it.

        The record lands behind every waiting entry of equal or higher
        priority; lower-priority entries move down one place.
        """
        allowed = REQUEUEABLE_STATES if requeue else ENQUEUEABLE_STATES
        if record.status not in allowed:
            raise InvalidStateError(
                f"Cannot enqueue tracking {record.pk} in state {record.status}",
                details={"tracking_id": record.pk, "status": record.status},
            )
        if record.queue_position is not None:
            raise InvalidStateError(
                f"Tracking {record.pk} is already queued at position {record.queue_position}",
                details={"tracking_id": record.pk, "queue_position": record.queue_position},
            )

        now = now or timezone.now()
        department = normalize_department(record.department)
        priority = record.order.priority

        with transaction.atomic():
            self._lock(department)

            pending = self._pending(department).exclude(pk=record.pk)
            ahead = pending.filter(order__priority__gte=priority).count()
            position = ahead + 1

            pending.filter(queue_position__gte=position).update(
                queue_position=F("queue_position") + 1
            )
            DepartmentTracking.objects.filter(pk=record.pk).update(
                queue_position=position,
                queued_at=now,
            )

            record.queue_position = position
            record.queued_at = now

            candidate = self.directory.find_available(department)
            if candidate is not None:
                self.emitter.emit_after_commit(
                    EventType.WORK_AVAILABLE,
                    build_payload(
                        order=record.order,
                        department=department,
                        worker_id=candidate.pk,
                        tracking_id=record.pk,
                        metadata={"queue_position": position},
                        now=now,
                    ),
                )

        logger.info(
            "Queued order %s in %s at position %s",
            record.order.order_number,
            department,
            position,
        )
        return position

    def next_for_worker(self, department: str) -> Optional[DepartmentTracking]:
        """Queue head for the department. Does not change anything."""
        department = normalize_department(department)
        with transaction.atomic():
            self._lock(department)
            return (
                self._pending(department)
                .select_related("order")
                .order_by("queue_position", "queued_at", "id")
                .first()
            )

    def reindex(self, department: str) -> int:
        """
        Renumber remaining entries 1..N, keeping their order.
        Must run in the transaction that removed an entry.
        Returns the number of entries.
        """
        department = normalize_department(department)
        with transaction.atomic():
            self._lock(department)

            entries = list(
                self._pending(department)
                .order_by("queue_position", "queued_at", "id")
                .values_list("pk", "queue_position")
            )
            for expected, (pk, position) in enumerate(entries, start=1):
                if position != expected:
                    DepartmentTracking.objects.filter(pk=pk).update(queue_position=expected)

        return len(entries)

    def entries(self, department: str) -> List[DepartmentTracking]:
        department = normalize_department(department)
        return list(
            self._pending(department)
            .select_related("order")
            .order_by("queue_position", "queued_at", "id")
        )

    def depth(self, department: str) -> int:
        return self._pending(normalize_department(department)).count()
