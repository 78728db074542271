# factory_core/apps.py

from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class FactoryCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "factory_core"

    def ready(self):
        from . import signals  # noqa

        # Fail fast on a broken pipeline definition
        from .workflows.departments import get_catalog

        catalog = get_catalog()
        logger.debug(
            "Department catalog loaded: %s",
            ", ".join(d.code for d in catalog.departments()),
        )
