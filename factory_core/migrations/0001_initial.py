import django.core.validators
import django.db.models.deletion
import django.db.models.expressions
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("order_number", models.CharField(max_length=50, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("IN_FACTORY", "In factory"), ("COMPLETED", "Completed")],
                        db_index=True,
                        default="DRAFT",
                        editable=False,
                        max_length=20,
                    ),
                ),
                ("current_department", models.CharField(blank=True, max_length=32, null=True)),
                (
                    "priority",
                    models.PositiveSmallIntegerField(
                        choices=[(1, "Low"), (2, "Normal"), (3, "High"), (4, "Urgent")],
                        default=2,
                    ),
                ),
                (
                    "gold_weight_initial",
                    models.DecimalField(
                        decimal_places=3,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("gold_weight_initial__gte", 0)),
                        name="order_gold_weight_initial_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Worker",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("department", models.CharField(db_index=True, max_length=32)),
                (
                    "availability_status",
                    models.CharField(
                        choices=[("AVAILABLE", "Available"), ("BUSY", "Busy"), ("OFFLINE", "Offline")],
                        default="AVAILABLE",
                        max_length=20,
                    ),
                ),
                ("last_assigned_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="factory_worker",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["department", "availability_status"], name="worker_dept_availability_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DepartmentQueue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("department", models.CharField(max_length=32, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="DepartmentTracking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("department", models.CharField(db_index=True, max_length=32)),
                ("sequence_order", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("NOT_STARTED", "Not started"),
                            ("PENDING_ASSIGNMENT", "Pending assignment"),
                            ("IN_PROGRESS", "In progress"),
                            ("ON_HOLD", "On hold"),
                            ("COMPLETED", "Completed"),
                        ],
                        default="NOT_STARTED",
                        editable=False,
                        max_length=32,
                    ),
                ),
                ("queue_position", models.PositiveIntegerField(blank=True, null=True)),
                ("queued_at", models.DateTimeField(blank=True, null=True)),
                ("gold_weight_in", models.DecimalField(decimal_places=3, max_digits=10)),
                ("gold_weight_out", models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ("gold_loss", models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("photos", models.JSONField(blank=True, default=list)),
                ("hold_reason", models.CharField(blank=True, max_length=500)),
                ("version", models.PositiveIntegerField(default=0)),
                (
                    "assigned_worker",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assignments",
                        to="factory_core.worker",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tracking_records",
                        to="factory_core.order",
                    ),
                ),
            ],
            options={
                "ordering": ["order_id", "sequence_order"],
                "indexes": [
                    models.Index(fields=["department", "status", "queue_position"], name="tracking_dept_status_pos_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("order", "department"), name="uniq_tracking_order_department"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("gold_weight_out__isnull", True),
                            ("gold_weight_out__lte", django.db.models.expressions.F("gold_weight_in")),
                            _connector="OR",
                        ),
                        name="tracking_weight_out_not_above_in",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("queue_position__isnull", True),
                            ("queue_position__gte", 1),
                            _connector="OR",
                        ),
                        name="tracking_queue_position_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderActivity",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("ORDER_CREATED", "Order created"),
                            ("STATUS_CHANGE", "Status change"),
                            ("DEPT_ENTERED", "Department entered"),
                            ("WORKER_ASSIGNED", "Worker assigned"),
                            ("WORKER_REASSIGNED", "Worker reassigned"),
                            ("WORKER_UNASSIGNED", "Worker unassigned"),
                            ("WORK_STARTED", "Work started"),
                            ("ON_HOLD", "On hold"),
                            ("RESUMED", "Resumed"),
                            ("DEPT_COMPLETED", "Department completed"),
                        ],
                        max_length=32,
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("department", models.CharField(blank=True, max_length=32)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="activities",
                        to="factory_core.order",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_activities",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "worker",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activities",
                        to="factory_core.worker",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["order", "created_at"], name="activity_order_created_idx"),
                    models.Index(fields=["action"], name="activity_action_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("NEW_ASSIGNMENT", "New assignment"),
                            ("URGENT_ASSIGNMENT", "Urgent assignment"),
                            ("WORK_AVAILABLE", "Work available"),
                            ("ASSIGNMENT_REMOVED", "Assignment removed"),
                            ("WORK_ON_HOLD", "Work on hold"),
                            ("WORK_RESUMED", "Work resumed"),
                            ("WORK_COMPLETED", "Work completed"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("CRITICAL", "Critical"),
                            ("IMPORTANT", "Important"),
                            ("INFO", "Info"),
                            ("SUCCESS", "Success"),
                        ],
                        default="INFO",
                        max_length=16,
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("is_read", models.BooleanField(default=False)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="factory_core.order",
                    ),
                ),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="factory_core.worker",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
                    models.Index(fields=["type"], name="notif_type_idx"),
                ],
            },
        ),
    ]
