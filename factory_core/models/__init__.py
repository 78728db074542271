from factory_core.models.core import (
    TimeStampedModel,
    Order,
    Worker,
    DepartmentTracking,
    DepartmentQueue,
)
from factory_core.models.activity import OrderActivity
from factory_core.models.notification import Notification

__all__ = [
    "TimeStampedModel",
    "Order",
    "Worker",
    "DepartmentTracking",
    "DepartmentQueue",
    "OrderActivity",
    "Notification",
]
