from django.conf import settings
from django.db import models


class OrderActivity(models.Model):
    """
    Immutable audit trail for order workflow changes.

    Written by the engine inside the same transaction as the change it
    describes, so the trail never disagrees with committed state.
    """

    class Action(models.TextChoices):
        ORDER_CREATED = "ORDER_CREATED", "Order created"
        STATUS_CHANGE = "STATUS_CHANGE", "Status change"
        DEPT_ENTERED = "DEPT_ENTERED", "Department entered"
        WORKER_ASSIGNED = "WORKER_ASSIGNED", "Worker assigned"
        WORKER_REASSIGNED = "WORKER_REASSIGNED", "Worker reassigned"
        WORKER_UNASSIGNED = "WORKER_UNASSIGNED", "Worker unassigned"
        WORK_STARTED = "WORK_STARTED", "Work started"
        ON_HOLD = "ON_HOLD", "On hold"
        RESUMED = "RESUMED", "Resumed"
        DEPT_COMPLETED = "DEPT_COMPLETED", "Department completed"

    order = models.ForeignKey(
        "factory_core.Order",
        on_delete=models.CASCADE,
        related_name="activities",
    )

    action = models.CharField(max_length=32, choices=Action.choices)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    department = models.CharField(max_length=32, blank=True)

    worker = models.ForeignKey(
        "factory_core.Worker",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activities",
    )

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_activities",
    )

    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="activity_order_created_idx"),
            models.Index(fields=["action"], name="activity_action_idx"),
        ]

    def __str__(self):
        return f"{self.order_id} {self.action}: {self.title}"
