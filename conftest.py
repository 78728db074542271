import pytest

from factory_core.workflows import departments
from gold_factory.celery import app as celery_app


@pytest.fixture(autouse=True, scope="session")
def _celery_runs_inline():
    # No broker in tests; .delay() executes the task immediately
    celery_app.conf.task_always_eager = True


@pytest.fixture(autouse=True)
def _fresh_department_catalog(monkeypatch):
    # Settings overrides must not leak a cached catalog between tests
    monkeypatch.setattr(departments, "_catalog", None)
