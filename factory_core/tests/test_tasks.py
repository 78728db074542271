import pytest
from django.utils import timezone

from factory_core.models import DepartmentTracking, Notification, Order, OrderActivity
from factory_core.tasks import deliver_workflow_event
from factory_core.workflows.engine import WorkflowEngine
from factory_core.workflows.events import CeleryEventSink, EventType


def _payload(order, worker=None, **metadata):
    return {
        "order_id": order.pk,
        "order_number": order.order_number,
        "priority": order.priority,
        "department": "CAD",
        "worker_id": worker.pk if worker else None,
        "tracking_id": None,
        "timestamp": timezone.now().isoformat(),
        "metadata": metadata,
    }


@pytest.mark.django_db
def test_assignment_becomes_notification(order, cad_worker):
    pk = deliver_workflow_event(EventType.ASSIGNMENT_CREATED, _payload(order, cad_worker))

    notification = Notification.objects.get(pk=pk)
    assert notification.recipient == cad_worker
    assert notification.order == order
    assert notification.type == Notification.Type.NEW_ASSIGNMENT
    assert notification.priority == Notification.Priority.IMPORTANT
    assert order.order_number in notification.title
    assert notification.metadata["event_type"] == EventType.ASSIGNMENT_CREATED


@pytest.mark.django_db
def test_urgent_orders_raise_priority(make_order, cad_worker):
    urgent = make_order(priority=Order.Priority.URGENT)

    assigned = Notification.objects.get(
        pk=deliver_workflow_event(EventType.ASSIGNMENT_CREATED, _payload(urgent, cad_worker))
    )
    completed = Notification.objects.get(
        pk=deliver_workflow_event(EventType.WORK_COMPLETED, _payload(urgent, cad_worker, gold_loss="0.2"))
    )

    assert assigned.type == Notification.Type.URGENT_ASSIGNMENT
    assert assigned.priority == Notification.Priority.CRITICAL
    assert completed.priority == Notification.Priority.SUCCESS


@pytest.mark.django_db
def test_events_without_recipient_are_only_logged(order, cad_worker):
    assert deliver_workflow_event(EventType.DEPARTMENT_ENTERED, _payload(order, cad_worker)) is None
    assert deliver_workflow_event(EventType.WORK_AVAILABLE, _payload(order)) is None
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_missing_worker_is_skipped(order, cad_worker):
    payload = _payload(order, cad_worker)
    payload["worker_id"] = 999999

    assert deliver_workflow_event(EventType.WORK_ON_HOLD, payload) is None


@pytest.mark.django_db
def test_engine_to_notification_end_to_end(catalog, order, cad_worker, django_capture_on_commit_callbacks):
    engine = WorkflowEngine(catalog=catalog, sink=CeleryEventSink(), policy="override")

    with django_capture_on_commit_callbacks(execute=True):
        engine.send_to_factory(order.pk)
        record = DepartmentTracking.objects.get(order=order, department="CAD")
        engine.assign_worker(record.pk, cad_worker.pk)

    types = list(cad_worker.notifications.order_by("id").values_list("type", flat=True))
    assert types == [Notification.Type.WORK_AVAILABLE, Notification.Type.NEW_ASSIGNMENT]


@pytest.mark.django_db
def test_order_creation_is_audited(order):
    (activity,) = order.activities.all()
    assert activity.action == OrderActivity.Action.ORDER_CREATED
    assert activity.metadata["gold_weight_initial"] == "50.000"


@pytest.mark.django_db
def test_periodic_dispatch_task(engine, order, cad_worker):
    from factory_core.tasks import dispatch_waiting_work

    engine.send_to_factory(order.pk)

    assert dispatch_waiting_work("CAD") == 1
    assert DepartmentTracking.objects.get(order=order).assigned_worker_id == cad_worker.pk
