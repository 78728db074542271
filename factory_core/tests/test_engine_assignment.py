import logging

import pytest

from factory_core.models import DepartmentTracking, OrderActivity, Worker
from factory_core.workflows import IN_PROGRESS, PENDING_ASSIGNMENT
from factory_core.workflows.engine import WorkflowEngine
from factory_core.workflows.errors import (
    AlreadyAssignedError,
    DepartmentMismatchError,
    IllegalTransitionError,
    WorkerUnavailableError,
)
from factory_core.workflows.events import EventType


@pytest.mark.django_db
def test_double_assignment_keeps_first_worker(engine, in_factory, make_worker):
    first = make_worker("CAD")
    second = make_worker("CAD")

    engine.assign_worker(in_factory.pk, first.pk)

    with pytest.raises(AlreadyAssignedError) as exc:
        engine.assign_worker(in_factory.pk, second.pk)

    in_factory.refresh_from_db()
    second.refresh_from_db()
    assert exc.value.code == "ALREADY_ASSIGNED"
    assert in_factory.assigned_worker_id == first.pk
    assert second.availability_status == Worker.Availability.AVAILABLE


@pytest.mark.django_db
def test_assignment_marks_worker_busy(engine, sink, in_factory, cad_worker, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        record = engine.assign_worker(in_factory.pk, cad_worker.pk)

    cad_worker.refresh_from_db()
    assert record.status == PENDING_ASSIGNMENT
    assert record.queue_position is None
    assert record.version == in_factory.version + 1
    assert cad_worker.availability_status == Worker.Availability.BUSY
    assert cad_worker.last_assigned_at is not None

    (payload,) = sink.of_type(EventType.ASSIGNMENT_CREATED)
    assert payload["worker_id"] == cad_worker.pk
    assert payload["tracking_id"] == record.pk
    assert payload["metadata"]["urgent"] is False


@pytest.mark.django_db
def test_busy_worker_cannot_take_second_record(engine, make_order, cad_worker):
    first, second = make_order(), make_order()
    engine.send_to_factory(first.pk)
    engine.send_to_factory(second.pk)
    first_cad = DepartmentTracking.objects.get(order=first, department="CAD")
    second_cad = DepartmentTracking.objects.get(order=second, department="CAD")

    engine.assign_worker(first_cad.pk, cad_worker.pk)

    with pytest.raises(WorkerUnavailableError):
        engine.assign_worker(second_cad.pk, cad_worker.pk)

    second_cad.refresh_from_db()
    assert second_cad.assigned_worker_id is None
    assert second_cad.queue_position == 1


@pytest.mark.django_db
@pytest.mark.parametrize(
    "kwargs",
    [
        {"availability_status": Worker.Availability.OFFLINE},
        {"is_active": False},
    ],
)
def test_unavailable_workers_are_rejected(engine, in_factory, make_worker, kwargs):
    worker = make_worker("CAD", **kwargs)

    with pytest.raises(WorkerUnavailableError):
        engine.assign_worker(in_factory.pk, worker.pk)


@pytest.mark.django_db
def test_strict_policy_rejects_other_department(strict_engine, order, print_worker):
    strict_engine.send_to_factory(order.pk)
    cad = DepartmentTracking.objects.get(order=order, department="CAD")

    with pytest.raises(DepartmentMismatchError) as exc:
        strict_engine.assign_worker(cad.pk, print_worker.pk, override=True)

    assert exc.value.code == "WORKER_WRONG_DEPARTMENT"
    assert exc.value.details["worker_department"] == "PRINT"


@pytest.mark.django_db
def test_override_policy_needs_explicit_override(engine, in_factory, print_worker, caplog):
    with pytest.raises(DepartmentMismatchError):
        engine.assign_worker(in_factory.pk, print_worker.pk)

    with caplog.at_level(logging.WARNING, logger="factory_core"):
        record = engine.assign_worker(in_factory.pk, print_worker.pk, override=True)

    assert record.assigned_worker_id == print_worker.pk
    assert "Cross-department assignment" in caplog.text

    audit = record.order.activities.get(action=OrderActivity.Action.WORKER_ASSIGNED)
    assert audit.metadata["cross_department"] is True
    assert audit.metadata["override"] is True


@pytest.mark.django_db
def test_open_policy_allows_any_department(catalog, sink, order, print_worker):
    engine = WorkflowEngine(catalog=catalog, sink=sink, policy="open")
    engine.send_to_factory(order.pk)
    cad = DepartmentTracking.objects.get(order=order, department="CAD")

    record = engine.assign_worker(cad.pk, print_worker.pk)

    assert record.assigned_worker_id == print_worker.pk


@pytest.mark.django_db
def test_unknown_policy_is_rejected(catalog, sink):
    with pytest.raises(ValueError):
        WorkflowEngine(catalog=catalog, sink=sink, policy="lenient")


@pytest.mark.django_db
def test_unassign_returns_record_to_queue_tail(
    engine, sink, make_order, cad_worker, django_capture_on_commit_callbacks
):
    first, second = make_order(), make_order()
    engine.send_to_factory(first.pk)
    engine.send_to_factory(second.pk)
    first_cad = DepartmentTracking.objects.get(order=first, department="CAD")

    engine.assign_worker(first_cad.pk, cad_worker.pk)
    engine.start_work(first_cad.pk)

    with django_capture_on_commit_callbacks(execute=True):
        record = engine.unassign(first_cad.pk, reason="shift ended")

    cad_worker.refresh_from_db()
    assert record.status == PENDING_ASSIGNMENT
    assert record.assigned_worker_id is None
    assert record.queue_position == 2
    assert cad_worker.availability_status == Worker.Availability.AVAILABLE

    (payload,) = sink.of_type(EventType.WORKER_UNASSIGNED)
    assert payload["worker_id"] == cad_worker.pk
    assert payload["metadata"] == {"from_status": IN_PROGRESS, "reason": "shift ended"}


@pytest.mark.django_db
def test_unassign_from_hold_clears_reason(engine, cad_in_progress):
    engine.put_on_hold(cad_in_progress.pk, "stone supplier late")

    record = engine.unassign(cad_in_progress.pk)

    assert record.hold_reason == ""
    assert record.queue_position == 1


@pytest.mark.django_db
def test_unassign_requires_a_worker(engine, in_factory):
    with pytest.raises(IllegalTransitionError):
        engine.unassign(in_factory.pk)


@pytest.mark.django_db
def test_reassign_moves_work_to_new_worker(engine, sink, cad_in_progress, cad_worker, make_worker, django_capture_on_commit_callbacks):
    replacement = make_worker("CAD", name="Meera")

    with django_capture_on_commit_callbacks(execute=True):
        record = engine.reassign_worker(cad_in_progress.pk, replacement.pk)

    cad_worker.refresh_from_db()
    replacement.refresh_from_db()
    assert record.assigned_worker_id == replacement.pk
    assert record.status == PENDING_ASSIGNMENT
    assert record.queue_position is None
    assert cad_worker.availability_status == Worker.Availability.AVAILABLE
    assert replacement.availability_status == Worker.Availability.BUSY
    assert [t for t in sink.types() if t != EventType.WORK_AVAILABLE] == [
        EventType.WORKER_UNASSIGNED,
        EventType.ASSIGNMENT_CREATED,
    ]
    assert record.order.activities.filter(action=OrderActivity.Action.WORKER_REASSIGNED).count() == 1

    started = engine.start_work(record.pk, worker_id=replacement.pk)
    assert started.status == IN_PROGRESS


@pytest.mark.django_db
def test_failed_reassign_changes_nothing(engine, cad_in_progress, cad_worker, make_worker):
    offline = make_worker("CAD", availability_status=Worker.Availability.OFFLINE)

    with pytest.raises(WorkerUnavailableError):
        engine.reassign_worker(cad_in_progress.pk, offline.pk)

    cad_in_progress.refresh_from_db()
    cad_worker.refresh_from_db()
    assert cad_in_progress.status == IN_PROGRESS
    assert cad_in_progress.assigned_worker_id == cad_worker.pk
    assert cad_in_progress.queue_position is None
    assert cad_worker.availability_status == Worker.Availability.BUSY


@pytest.mark.django_db
def test_failed_reassign_logs_no_unassignment(
    engine, cad_in_progress, make_worker, caplog, django_capture_on_commit_callbacks
):
    offline = make_worker("CAD", availability_status=Worker.Availability.OFFLINE)

    with caplog.at_level(logging.INFO, logger="factory_core.workflows.engine"):
        with django_capture_on_commit_callbacks(execute=True):
            with pytest.raises(WorkerUnavailableError):
                engine.reassign_worker(cad_in_progress.pk, offline.pk)

    assert "Unassigned worker" not in caplog.text


@pytest.mark.django_db
def test_reassign_logs_unassignment_after_commit(
    engine, cad_in_progress, cad_worker, make_worker, caplog, django_capture_on_commit_callbacks
):
    replacement = make_worker("CAD")

    with caplog.at_level(logging.INFO, logger="factory_core.workflows.engine"):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            engine.reassign_worker(cad_in_progress.pk, replacement.pk)
        assert "Unassigned worker" not in caplog.text

        for callback in callbacks:
            callback()

    assert f"Unassigned worker {cad_worker.pk} from CAD" in caplog.text


@pytest.mark.django_db
def test_reassign_to_same_worker_is_rejected(engine, cad_in_progress, cad_worker):
    with pytest.raises(AlreadyAssignedError):
        engine.reassign_worker(cad_in_progress.pk, cad_worker.pk)


@pytest.mark.django_db
def test_assigning_completed_record_is_an_illegal_transition(engine, cad_in_progress, make_worker):
    engine.complete_work(cad_in_progress.pk, "49")
    other = make_worker("CAD")

    with pytest.raises(IllegalTransitionError):
        engine.assign_worker(cad_in_progress.pk, other.pk)

    other.refresh_from_db()
    assert other.availability_status == Worker.Availability.AVAILABLE


@pytest.mark.django_db
def test_assigning_in_progress_record_is_an_illegal_transition(engine, cad_in_progress, make_worker):
    with pytest.raises(IllegalTransitionError):
        engine.assign_worker(cad_in_progress.pk, make_worker("CAD").pk)
