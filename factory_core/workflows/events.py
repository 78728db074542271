# factory_core/workflows/events.py
from __future__ import annotations

"""
Workflow event emission.

The engine never talks to a transport. It hands (event_type, payload) to an
EventSink, and only after the surrounding transaction has committed:

    engine -> EventEmitter.emit_after_commit() -> transaction.on_commit
           -> EventSink.emit()  (Celery task, log line, in-memory list)

Sink failures are logged and dropped. A committed transition is never
rolled back because a notification could not be delivered.
"""

import logging
from decimal import Decimal
from functools import partial
from typing import Any, Dict, List, Optional, Protocol

from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


# ===============================================================
# Event types
# ===============================================================

class EventType:
    WORK_AVAILABLE = "WORK_AVAILABLE"
    ASSIGNMENT_CREATED = "ASSIGNMENT_CREATED"
    WORKER_UNASSIGNED = "WORKER_UNASSIGNED"
    WORK_STARTED = "WORK_STARTED"
    WORK_ON_HOLD = "WORK_ON_HOLD"
    WORK_RESUMED = "WORK_RESUMED"
    WORK_COMPLETED = "WORK_COMPLETED"
    DEPARTMENT_ENTERED = "DEPARTMENT_ENTERED"
    ORDER_SENT_TO_FACTORY = "ORDER_SENT_TO_FACTORY"
    ORDER_COMPLETED = "ORDER_COMPLETED"


EVENT_TYPES = frozenset(
    value for name, value in vars(EventType).items() if not name.startswith("_")
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def build_payload(
    *,
    order,
    department: Optional[str],
    worker_id: Optional[int] = None,
    tracking_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    now=None,
) -> Dict[str, Any]:
    """
    Standard event payload. Everything in it is JSON-serializable so it can
    cross a Celery boundary unchanged.
    """
    return {
        "order_id": order.pk,
        "order_number": order.order_number,
        "priority": order.priority,
        "department": department,
        "worker_id": worker_id,
        "tracking_id": tracking_id,
        "timestamp": (now or timezone.now()).isoformat(),
        "metadata": _jsonable(metadata or {}),
    }


# ===============================================================
# Sinks
# ===============================================================

class EventSink(Protocol):
    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        ...


class InMemoryEventSink:
    """Keeps every event in a list. Used by tests and diagnostics."""

    def __init__(self) -> None:
        self.events: List[tuple] = []

    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.events.append((event_type, payload))

    def types(self) -> List[str]:
        return [event_type for event_type, _ in self.events]

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [payload for t, payload in self.events if t == event_type]

    def clear(self) -> None:
        self.events.clear()


class LoggingEventSink:
    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        logger.info(
            "Workflow event %s order=%s department=%s worker=%s",
            event_type,
            payload.get("order_number"),
            payload.get("department"),
            payload.get("worker_id"),
        )


class CeleryEventSink:
    """
    Fire-and-forget hand-off to the deliver_workflow_event task.

    Publishing does not retry: an unreachable broker fails fast and the
    emitter logs it instead of blocking the caller.
    """

    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        from factory_core.tasks import deliver_workflow_event

        deliver_workflow_event.apply_async(args=(event_type, payload), retry=False)


def load_sink(path: Optional[str] = None) -> EventSink:
    if path is None:
        from django.conf import settings

        workflow = getattr(settings, "FACTORY_WORKFLOW", {}) or {}
        path = workflow.get("EVENT_SINK") or "factory_core.workflows.events.CeleryEventSink"
    return import_string(path)()


# ===============================================================
# Engine-side emitter
# ===============================================================

class EventEmitter:
    def __init__(self, sink: EventSink):
        self.sink = sink

    def emit_after_commit(self, event_type: str, payload: Dict[str, Any]) -> None:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown workflow event type: {event_type}")
        transaction.on_commit(partial(self._deliver, event_type, payload))

    def _deliver(self, event_type: str, payload: Dict[str, Any]) -> None:
        try:
            self.sink.emit(event_type, payload)
        except Exception:
            logger.exception(
                "Event delivery failed for %s (order=%s); transition already committed",
                event_type,
                payload.get("order_number"),
            )
