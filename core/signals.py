import logging
from django.db.models.signals import pre_save, post_save, post_delete
from django.dispatch import receiver

from .models import Reservation, Table
# -----------------------------------------------------------------------------
# Logger
# -----------------------------------------------------------------------------
audit_logger = logging.getLogger("audit")

# -----------------------------------------------------------------------------
# Store previous Reservation status
# -----------------------------------------------------------------------------
@receiver(pre_save, sender=Reservation)
def store_previous_reservation_status(sender, instance, using, **kwargs):
    instance._previous_status = None
    if instance.pk:
        instance._previous_status = (
            Reservation.objects.using(using)
            .filter(pk=instance.pk)
            .values_list("status", flat=True)
            .first()
        )

# -----------------------------------------------------------------------------
# Reservation audit trail
# -----------------------------------------------------------------------------
@receiver(post_save, sender=Reservation)
def audit_reservation_saved(sender, instance, created, **kwargs):
    if created:
        audit_logger.info(
            f"🆕 Reservation {instance.pk} created: user={instance.user_id} table={instance.table_id} "
            f"date={instance.date} time={instance.time} people={instance.people} status={instance.status}"
        )
        return

    previous_status = getattr(instance, "_previous_status", None)
    if previous_status == instance.status:
        return

    audit_logger.info(f"🔄 Reservation {instance.pk} status changed: {previous_status} → {instance.status}")


@receiver(post_delete, sender=Reservation)
def audit_reservation_deleted(sender, instance, **kwargs):
    audit_logger.info(f"🗑️ Reservation {instance.pk} deleted (table={instance.table_id}).")

# -----------------------------------------------------------------------------
# Table availability flips
# -----------------------------------------------------------------------------
def log_table_availability(table_pk, is_available, via):
    """Audit line for a table flag flip; the engine calls this for its bulk updates."""
    state = "available" if is_available else "unavailable"
    audit_logger.info(f"🪑 Table {table_pk} marked {state} (via {via}).")


@receiver(pre_save, sender=Table)
def store_previous_table_availability(sender, instance, using, **kwargs):
    instance._previous_availability = None
    if instance.pk:
        instance._previous_availability = (
            Table.objects.using(using)
            .filter(pk=instance.pk)
            .values_list("is_available", flat=True)
            .first()
        )


@receiver(post_save, sender=Table)
def audit_table_availability(sender, instance, created, **kwargs):
    previous = getattr(instance, "_previous_availability", None)
    if created or previous is None or previous == instance.is_available:
        return
    log_table_availability(instance.pk, instance.is_available, "model save")
