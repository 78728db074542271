# gold_factory/celery.py
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gold_factory.settings")

app = Celery("gold_factory")
app.config_from_object("django.conf:settings", namespace="CELERY")

# Django's LOGGING config stays in charge of worker output
app.conf.worker_hijack_root_logger = False

# Hand queued department work to workers who came free without an event
app.conf.beat_schedule = {
    "dispatch-waiting-work-every-2-mins": {
        "task": "factory_core.tasks.dispatch_waiting_work",
        "schedule": crontab(minute="*/2"),
    },
}

app.autodiscover_tasks()
