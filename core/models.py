from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.conf import settings
from django.db import models


# =============================================================================
# === USERS ===================================================================
# =============================================================================

class CustomUser(AbstractUser):
    email = models.EmailField(unique=True)
    is_admin = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if not self.is_superuser:
            self.is_staff = self.is_admin
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.username} ({'admin' if self.is_admin else 'guest'})"


# =============================================================================
# === TABLES ==================================================================
# =============================================================================

class Table(models.Model):
    name = models.CharField(max_length=100)
    capacity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"Table {self.name} (Seats: {self.capacity})"


# =============================================================================
# === RESERVATIONS ============================================================
# =============================================================================

class ReservationQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status__in=Reservation.ACTIVE_STATUSES)

    def for_slot(self, table, date, time):
        return self.filter(table=table, date=date, time=time)


class Reservation(models.Model):
    class Status(models.TextChoices):
        BOOKED = "booked", "Booked"
        SEATED = "seated", "Seated"
        CANCELLED = "cancelled", "Cancelled"
        COMPLETED = "completed", "Completed"

    # Statuses that hold a table for their slot.
    ACTIVE_STATUSES = (Status.BOOKED, Status.SEATED)

    date = models.DateField()
    time = models.CharField(max_length=20)
    people = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.BOOKED)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    table = models.ForeignKey(
        "Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reservations",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["table", "date", "time"], name="core_reserv_table_slot_idx"),
        ]

    def __str__(self):
        return f"Reservation {self.pk} ({self.date} {self.time}, {self.people} people, {self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES
