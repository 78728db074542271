# factory_core/workflows/directory.py
from __future__ import annotations

import logging
from typing import List, Optional

from django.db.models import F
from django.utils import timezone

from factory_core.models import Worker
from factory_core.workflows import COMPLETED
from factory_core.workflows.departments import normalize_department
from factory_core.workflows.errors import RecordNotFoundError, WorkerUnavailableError

logger = logging.getLogger(__name__)

AVAILABLE = Worker.Availability.AVAILABLE
BUSY = Worker.Availability.BUSY
OFFLINE = Worker.Availability.OFFLINE


class WorkerDirectory:
    """
    Lookup of workers by department and availability.

    Read methods are used by the queue and the engine. The write methods
    (mark_busy / mark_available) are only called by WorkflowEngine inside
    its transactions.
    """

    def get(self, worker_id: int) -> Worker:
        try:
            return Worker.objects.get(pk=worker_id)
        except Worker.DoesNotExist:
            raise RecordNotFoundError(
                f"Worker {worker_id} not found",
                details={"worker_id": worker_id},
            ) from None

    def lock(self, worker_id: int) -> Worker:
        try:
            return Worker.objects.select_for_update().get(pk=worker_id)
        except Worker.DoesNotExist:
            raise RecordNotFoundError(
                f"Worker {worker_id} not found",
                details={"worker_id": worker_id},
            ) from None

    def workers_for(self, department: str, *, available_only: bool = False) -> List[Worker]:
        qs = Worker.objects.filter(department=normalize_department(department), is_active=True)
        if available_only:
            qs = qs.filter(availability_status=AVAILABLE)
        return list(qs.order_by(F("last_assigned_at").asc(nulls_first=True), "id"))

    def find_available(self, department: str) -> Optional[Worker]:
        """
        Least recently assigned available worker, never-assigned first.
        """
        return (
            Worker.objects.filter(
                department=normalize_department(department),
                availability_status=AVAILABLE,
                is_active=True,
            )
            .order_by(F("last_assigned_at").asc(nulls_first=True), "id")
            .first()
        )

    def mark_busy(self, worker_id: int, *, now=None) -> None:
        now = now or timezone.now()
        updated = Worker.objects.filter(
            pk=worker_id,
            availability_status=AVAILABLE,
            is_active=True,
        ).update(availability_status=BUSY, last_assigned_at=now, updated_at=now)

        if not updated:
            raise WorkerUnavailableError(
                f"Worker {worker_id} is not available",
                details={"worker_id": worker_id},
            )

    def mark_available(self, worker_id: int) -> None:
        """
        Release a worker. Workers who went OFFLINE meanwhile stay OFFLINE.
        """
        updated = Worker.objects.filter(pk=worker_id, availability_status=BUSY).update(
            availability_status=AVAILABLE,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.info("Worker %s released while not BUSY; availability left unchanged", worker_id)

    def set_offline(self, worker_id: int) -> None:
        Worker.objects.filter(pk=worker_id).update(
            availability_status=OFFLINE,
            updated_at=timezone.now(),
        )

    def set_online(self, worker_id: int) -> None:
        """
        Bring an OFFLINE worker back. Workers holding an active assignment
        come back BUSY.
        """
        worker = self.get(worker_id)
        if worker.availability_status != OFFLINE:
            return

        has_work = worker.assignments.exclude(status=COMPLETED).exists()
        Worker.objects.filter(pk=worker_id).update(
            availability_status=BUSY if has_work else AVAILABLE,
            updated_at=timezone.now(),
        )
