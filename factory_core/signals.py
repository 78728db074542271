# factory_core/signals.py
from __future__ import annotations

from django.db.models.signals import post_save
from django.dispatch import receiver

from factory_core.models import Order, OrderActivity


# ===============================================================
# Order audit
# ===============================================================
@receiver(post_save, sender=Order)
def audit_order_created(sender, instance, created, **kwargs):
    if not created or kwargs.get("raw"):
        return

    OrderActivity.objects.create(
        order=instance,
        action=OrderActivity.Action.ORDER_CREATED,
        title=f"Order {instance.order_number} created",
        metadata={
            "priority": instance.priority,
            "gold_weight_initial": str(instance.gold_weight_initial),
        },
    )
