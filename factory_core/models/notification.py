from django.db import models


class Notification(models.Model):
    class Type(models.TextChoices):
        NEW_ASSIGNMENT = "NEW_ASSIGNMENT", "New assignment"
        URGENT_ASSIGNMENT = "URGENT_ASSIGNMENT", "Urgent assignment"
        WORK_AVAILABLE = "WORK_AVAILABLE", "Work available"
        ASSIGNMENT_REMOVED = "ASSIGNMENT_REMOVED", "Assignment removed"
        WORK_ON_HOLD = "WORK_ON_HOLD", "Work on hold"
        WORK_RESUMED = "WORK_RESUMED", "Work resumed"
        WORK_COMPLETED = "WORK_COMPLETED", "Work completed"

    class Priority(models.TextChoices):
        CRITICAL = "CRITICAL", "Critical"
        IMPORTANT = "IMPORTANT", "Important"
        INFO = "INFO", "Info"
        SUCCESS = "SUCCESS", "Success"

    recipient = models.ForeignKey(
        "factory_core.Worker",
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    order = models.ForeignKey(
        "factory_core.Order",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
    )

    type = models.CharField(max_length=32, choices=Type.choices)
    priority = models.CharField(max_length=16, choices=Priority.choices, default=Priority.INFO)
    title = models.CharField(max_length=255)
    message = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
            models.Index(fields=["type"], name="notif_type_idx"),
        ]

    def __str__(self):
        return f"{self.recipient_id} {self.type}: {self.title}"
