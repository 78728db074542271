# factory_core/tests/conftest.py

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Callable

import pytest
from django.contrib.auth import get_user_model

from factory_core.models import DepartmentTracking, Order, Worker
from factory_core.workflows.departments import DepartmentCatalog
from factory_core.workflows.engine import WorkflowEngine
from factory_core.workflows.events import InMemoryEventSink


def _rand(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def catalog() -> DepartmentCatalog:
    """Two-department pipeline keeps lifecycle tests short."""
    return DepartmentCatalog(["CAD", "PRINT"])


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def engine(catalog, sink) -> WorkflowEngine:
    return WorkflowEngine(catalog=catalog, sink=sink, policy="override")


@pytest.fixture
def strict_engine(catalog, sink) -> WorkflowEngine:
    return WorkflowEngine(catalog=catalog, sink=sink, policy="strict")


@pytest.fixture
def supervisor(db):
    User = get_user_model()
    user, _ = User.objects.get_or_create(username="supervisor", defaults={"is_staff": True})
    return user


@pytest.fixture
def make_order(db) -> Callable[..., Order]:
    def _make(weight="50.000", priority=Order.Priority.NORMAL, **kwargs) -> Order:
        return Order.objects.create(
            order_number=kwargs.pop("order_number", _rand("ORD")),
            gold_weight_initial=Decimal(str(weight)),
            priority=priority,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_worker(db) -> Callable[..., Worker]:
    def _make(department="CAD", **kwargs) -> Worker:
        return Worker.objects.create(
            name=kwargs.pop("name", _rand("Worker")),
            department=department,
            **kwargs,
        )

    return _make


@pytest.fixture
def order(make_order) -> Order:
    return make_order()


@pytest.fixture
def cad_worker(make_worker) -> Worker:
    return make_worker("CAD", name="Asha")


@pytest.fixture
def print_worker(make_worker) -> Worker:
    return make_worker("PRINT", name="Ravi")


@pytest.fixture
def in_factory(engine, order) -> DepartmentTracking:
    """Order sent to the factory; returns its CAD record (pending, queued)."""
    engine.send_to_factory(order.pk)
    return DepartmentTracking.objects.get(order=order, department="CAD")


@pytest.fixture
def cad_in_progress(engine, in_factory, cad_worker) -> DepartmentTracking:
    engine.assign_worker(in_factory.pk, cad_worker.pk)
    return engine.start_work(in_factory.pk, worker_id=cad_worker.pk)
