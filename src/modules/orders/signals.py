"""Signals guarding the order snapshot and recording status history."""

from __future__ import annotations

from typing import Any, Optional

from django.contrib.auth import get_user_model
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from modules.orders.exceptions import ImmutableOrderField
from modules.orders.models import FROZEN_FIELDS, Order, OrderStatusHistory


@receiver(pre_save, sender=Order)
def _guard_frozen_fields(sender, instance: Order, **kwargs) -> None:
    if instance._state.adding:
        instance._previous_status = None
        return

    stored = sender.objects.filter(pk=instance.pk).values("status", *FROZEN_FIELDS).first()
    if stored is None:
        instance._previous_status = None
        return

    changed = [
        field for field in FROZEN_FIELDS if stored[field] != getattr(instance, field)
    ]
    if changed:
        raise ImmutableOrderField(
            f"Order {instance.order_number}: {', '.join(changed)} cannot change "
            f"after checkout."
        )
    instance._previous_status = stored["status"]


@receiver(post_save, sender=Order)
def _create_status_history(sender, instance: Order, created: bool, **kwargs) -> None:
    previous_status: Optional[str] = getattr(instance, "_previous_status", None)

    if created or previous_status != instance.status:
        OrderStatusHistory.objects.create(
            order=instance,
            old_status=previous_status,
            new_status=instance.status,
            changed_by_id=_user_id(getattr(instance, "_status_changed_by", None)),
            notes="Order placed" if created else "",
        )

    _clear_transient_status_attrs(instance)


def _user_id(actor: Any) -> Any:
    if isinstance(actor, get_user_model()) and actor.pk is not None:
        return actor.pk
    return None


def _clear_transient_status_attrs(instance: Order) -> None:
    for attr in ("_previous_status", "_status_changed_by"):
        if hasattr(instance, attr):
            delattr(instance, attr)
