# factory_core/models/core.py

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from factory_core.workflows.guards import WorkflowWriteGuardMixin


WEIGHT_FIELD_KWARGS = {
    "max_digits": 10,
    "decimal_places": 3,
}


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ============================================================
# Order
# ============================================================
class Order(WorkflowWriteGuardMixin, TimeStampedModel):
    """A custom jewelry order travelling through the department pipeline."""

    WORKFLOW_FIELDS = ("status", "current_department", "completed_at")

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        IN_FACTORY = "IN_FACTORY", "In factory"
        COMPLETED = "COMPLETED", "Completed"

    class Priority(models.IntegerChoices):
        LOW = 1, "Low"
        NORMAL = 2, "Normal"
        HIGH = 3, "High"
        URGENT = 4, "Urgent"

    order_number = models.CharField(max_length=50, unique=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        editable=False,
        db_index=True,
    )

    # Cached pointer to the first not-yet-completed department.
    # DepartmentTracking rows are the source of truth.
    current_department = models.CharField(max_length=32, null=True, blank=True)

    priority = models.PositiveSmallIntegerField(
        choices=Priority.choices,
        default=Priority.NORMAL,
    )

    gold_weight_initial = models.DecimalField(
        **WEIGHT_FIELD_KWARGS,
        validators=[MinValueValidator(Decimal("0"))],
    )

    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                name="order_gold_weight_initial_non_negative",
                condition=Q(gold_weight_initial__gte=0),
            ),
        ]

    def __str__(self):
        return self.order_number


# ============================================================
# Worker
# ============================================================
class Worker(TimeStampedModel):
    class Availability(models.TextChoices):
        AVAILABLE = "AVAILABLE", "Available"
        BUSY = "BUSY", "Busy"
        OFFLINE = "OFFLINE", "Offline"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="factory_worker",
    )

    name = models.CharField(max_length=255)
    department = models.CharField(max_length=32, db_index=True)

    availability_status = models.CharField(
        max_length=20,
        choices=Availability.choices,
        default=Availability.AVAILABLE,
    )
    last_assigned_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        indexes = [
            models.Index(fields=["department", "availability_status"], name="worker_dept_availability_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.department})"


# ============================================================
# Department tracking
# ============================================================
class DepartmentTracking(WorkflowWriteGuardMixin, TimeStampedModel):
    """
    State of one order at one department.

    Created lazily when the order reaches the department. ``status`` and
    the assignment/weight fields are written only by WorkflowEngine, which
    bumps ``version`` on every write.
    """

    WORKFLOW_FIELDS = (
        "status",
        "assigned_worker",
        "queue_position",
        "gold_weight_out",
        "gold_loss",
        "version",
    )

    class Status(models.TextChoices):
        NOT_STARTED = "NOT_STARTED", "Not started"
        PENDING_ASSIGNMENT = "PENDING_ASSIGNMENT", "Pending assignment"
        IN_PROGRESS = "IN_PROGRESS", "In progress"
        ON_HOLD = "ON_HOLD", "On hold"
        COMPLETED = "COMPLETED", "Completed"

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="tracking_records",
    )
    department = models.CharField(max_length=32, db_index=True)
    sequence_order = models.PositiveIntegerField()

    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.NOT_STARTED,
        editable=False,
    )

    assigned_worker = models.ForeignKey(
        Worker,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assignments",
    )

    queue_position = models.PositiveIntegerField(null=True, blank=True)
    queued_at = models.DateTimeField(null=True, blank=True)

    gold_weight_in = models.DecimalField(**WEIGHT_FIELD_KWARGS)
    gold_weight_out = models.DecimalField(**WEIGHT_FIELD_KWARGS, null=True, blank=True)
    gold_loss = models.DecimalField(**WEIGHT_FIELD_KWARGS, null=True, blank=True)

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True)
    photos = models.JSONField(default=list, blank=True)
    hold_reason = models.CharField(max_length=500, blank=True)

    version = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["order_id", "sequence_order"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "department"],
                name="uniq_tracking_order_department",
            ),
            models.CheckConstraint(
                name="tracking_weight_out_not_above_in",
                condition=Q(gold_weight_out__isnull=True) | Q(gold_weight_out__lte=F("gold_weight_in")),
            ),
            models.CheckConstraint(
                name="tracking_queue_position_positive",
                condition=Q(queue_position__isnull=True) | Q(queue_position__gte=1),
            ),
        ]
        indexes = [
            models.Index(fields=["department", "status", "queue_position"], name="tracking_dept_status_pos_idx"),
        ]

    def __str__(self):
        return f"{self.order_id}:{self.department} [{self.status}]"


# ============================================================
# Department queue lock anchor
# ============================================================
class DepartmentQueue(models.Model):
    """
    One row per department. Queue operations lock it with
    select_for_update() so positions stay contiguous.
    """

    department = models.CharField(max_length=32, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"queue:{self.department}"
