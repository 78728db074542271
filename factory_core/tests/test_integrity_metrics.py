from datetime import timedelta
from decimal import Decimal

import pytest

from factory_core.models import DepartmentTracking, Order, Worker
from factory_core.workflows.integrity import (
    check_all,
    check_order_integrity,
    check_queue_integrity,
    check_worker_integrity,
    derive_current_department,
)
from factory_core.workflows.metrics import compute_time_in_departments, gold_ledger, order_progress


@pytest.fixture
def cad_done(engine, cad_in_progress):
    return engine.complete_work(cad_in_progress.pk, "49.5")


@pytest.mark.django_db
def test_engine_produced_state_is_consistent(engine, catalog, cad_done, order, make_order):
    queued = make_order()
    engine.send_to_factory(queued.pk)
    order.refresh_from_db()

    assert check_order_integrity(order, catalog) == []
    assert check_order_integrity(queued, catalog) == []
    assert check_queue_integrity("CAD") == []
    assert check_queue_integrity("PRINT") == []
    assert check_worker_integrity() == []
    assert check_all(catalog) == []


@pytest.mark.django_db
def test_order_check_reads_current_row(engine, catalog, make_order):
    order = make_order()
    engine.send_to_factory(order.pk)

    assert order.status == Order.Status.DRAFT
    assert check_order_integrity(order, catalog) == []


@pytest.mark.django_db
def test_derive_current_department(cad_done, order):
    assert derive_current_department(order) == "PRINT"


@pytest.mark.django_db
def test_stale_current_department_is_reported(catalog, cad_done, order):
    Order.objects.filter(pk=order.pk).update(current_department="CAD")
    order.refresh_from_db()

    errors = check_order_integrity(order, catalog)
    assert any("current_department" in e for e in errors)


@pytest.mark.django_db
def test_broken_weight_chain_is_reported(catalog, cad_done, order):
    DepartmentTracking.objects.filter(order=order, department="PRINT").update(gold_weight_in=Decimal("49.9"))

    errors = check_order_integrity(order, catalog)
    assert any("PRINT: weight in" in e for e in errors)


@pytest.mark.django_db
def test_queue_gap_is_reported(engine, make_order):
    first, second = make_order(), make_order()
    engine.send_to_factory(first.pk)
    engine.send_to_factory(second.pk)
    DepartmentTracking.objects.filter(order=second).update(queue_position=3)

    (error,) = check_queue_integrity("CAD")
    assert "not contiguous" in error


@pytest.mark.django_db
def test_idle_busy_worker_is_reported(make_worker):
    worker = make_worker("CAD", availability_status=Worker.Availability.BUSY)

    assert check_worker_integrity() == [f"worker {worker.pk}: BUSY without an open assignment"]


@pytest.mark.django_db
def test_order_progress_and_ledger(catalog, cad_done, order):
    order.refresh_from_db()
    progress = order_progress(order, catalog)

    assert progress["completed_departments"] == 1
    assert progress["total_departments"] == 2
    assert progress["percent_complete"] == 50.0
    assert progress["current_department"] == "PRINT"
    assert progress["total_gold_loss"] == Decimal("0.5")

    ledger = gold_ledger(order)
    assert [row["department"] for row in ledger] == ["CAD", "PRINT"]
    assert ledger[0]["gold_weight_out"] == ledger[1]["gold_weight_in"]


@pytest.mark.django_db
def test_time_in_departments(cad_done, order):
    durations = compute_time_in_departments(order)

    assert set(durations) == {"CAD"}
    assert durations["CAD"] >= timedelta(0)
