# factory_core/tasks.py
from __future__ import annotations

import logging

from celery import shared_task

from factory_core.models import Notification, Order, Worker
from factory_core.services import dispatch
from factory_core.workflows.events import EventType

logger = logging.getLogger(__name__)


# event type -> (notification type, default priority, title template)
NOTIFICATION_RULES = {
    EventType.WORK_AVAILABLE: (
        Notification.Type.WORK_AVAILABLE,
        Notification.Priority.IMPORTANT,
        "Work available in {department}",
    ),
    EventType.ASSIGNMENT_CREATED: (
        Notification.Type.NEW_ASSIGNMENT,
        Notification.Priority.IMPORTANT,
        "New assignment: order {order_number}",
    ),
    EventType.WORKER_UNASSIGNED: (
        Notification.Type.ASSIGNMENT_REMOVED,
        Notification.Priority.INFO,
        "Assignment removed: order {order_number}",
    ),
    EventType.WORK_ON_HOLD: (
        Notification.Type.WORK_ON_HOLD,
        Notification.Priority.IMPORTANT,
        "Order {order_number} on hold",
    ),
    EventType.WORK_RESUMED: (
        Notification.Type.WORK_RESUMED,
        Notification.Priority.INFO,
        "Order {order_number} resumed",
    ),
    EventType.WORK_COMPLETED: (
        Notification.Type.WORK_COMPLETED,
        Notification.Priority.SUCCESS,
        "{department} completed for order {order_number}",
    ),
}


def _message(event_type: str, payload: dict) -> str:
    metadata = payload.get("metadata") or {}
    department = payload.get("department")

    if event_type == EventType.WORK_AVAILABLE:
        return f"Order {payload['order_number']} is waiting at position {metadata.get('queue_position')}."
    if event_type == EventType.ASSIGNMENT_CREATED:
        return f"You have been assigned {department} for order {payload['order_number']}."
    if event_type == EventType.WORK_ON_HOLD:
        return f"Reason: {metadata.get('reason', '')}"
    if event_type == EventType.WORK_COMPLETED:
        return (
            f"Gold in {metadata.get('gold_weight_in')} g, out {metadata.get('gold_weight_out')} g, "
            f"loss {metadata.get('gold_loss')} g."
        )
    return f"{department} for order {payload['order_number']}."


@shared_task
def deliver_workflow_event(event_type: str, payload: dict) -> int | None:
    """
    Turn a committed workflow event into a worker notification.

    Events without a worker are only logged. Returns the Notification id,
    or None when nothing was stored.
    """
    rule = NOTIFICATION_RULES.get(event_type)
    worker_id = payload.get("worker_id")

    if rule is None or worker_id is None:
        logger.info(
            "Workflow event %s for order %s (%s)",
            event_type,
            payload.get("order_number"),
            payload.get("department"),
        )
        return None

    worker = Worker.objects.filter(pk=worker_id).first()
    if worker is None:
        logger.warning("Workflow event %s addressed to missing worker %s", event_type, worker_id)
        return None

    notification_type, priority, title = rule
    urgent = payload.get("priority") == Order.Priority.URGENT

    if urgent and priority != Notification.Priority.SUCCESS:
        priority = Notification.Priority.CRITICAL
        if notification_type == Notification.Type.NEW_ASSIGNMENT:
            notification_type = Notification.Type.URGENT_ASSIGNMENT

    notification = Notification.objects.create(
        recipient=worker,
        order_id=payload.get("order_id"),
        type=notification_type,
        priority=priority,
        title=title.format(
            department=payload.get("department"),
            order_number=payload.get("order_number"),
        ),
        message=_message(event_type, payload),
        metadata={
            "event_type": event_type,
            "tracking_id": payload.get("tracking_id"),
            "department": payload.get("department"),
            "timestamp": payload.get("timestamp"),
            **(payload.get("metadata") or {}),
        },
    )
    return notification.pk


@shared_task
def dispatch_waiting_work(department: str | None = None) -> int:
    return dispatch.dispatch_waiting_work(department)
