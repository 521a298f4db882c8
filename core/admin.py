# core/admin.py
import logging

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin
from django.http import HttpResponseRedirect

from .exceptions import ReservationServiceError
from .forms import CustomUserChangeForm, CustomUserCreationForm
from .models import CustomUser, Reservation, Table
from .services import ReservationEngine

logger = logging.getLogger(__name__)

# =============================================================================
# === ADMIN-ONLY ACCESS =======================================================
# =============================================================================

def _is_admin(user):
    return user.is_authenticated and (user.is_superuser or user.is_admin)


class AdminOnlyModelAdmin(admin.ModelAdmin):
    """Base admin restricted to superusers and users flagged as admins."""

    def has_module_permission(self, request):
        return _is_admin(request.user)

    def has_view_permission(self, request, obj=None):
        return _is_admin(request.user)

    def has_add_permission(self, request):
        return _is_admin(request.user)

    def has_change_permission(self, request, obj=None):
        return _is_admin(request.user)

    def has_delete_permission(self, request, obj=None):
        return _is_admin(request.user)


# =============================================================================
# === USER ADMIN ==============================================================
# =============================================================================

@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    add_form = CustomUserCreationForm
    form = CustomUserChangeForm
    list_display = ("username", "email", "is_admin", "is_active", "created_at")
    list_filter = ("is_admin", "is_active")
    search_fields = ("username", "email")
    readonly_fields = ("last_login", "date_joined", "created_at", "updated_at")
    ordering = ("-created_at",)
    fieldsets = UserAdmin.fieldsets + (
        ("Reservations", {"fields": ("is_admin", "created_at", "updated_at")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("username", "email", "is_admin", "password1", "password2")}),
    )


# =============================================================================
# === TABLE ADMIN =============================================================
# =============================================================================

def _set_availability(queryset, is_available):
    # Saved one by one so the audit receivers see each flip.
    for table in queryset.filter(is_available=not is_available):
        table.is_available = is_available
        table.save(update_fields=["is_available", "updated_at"])


@admin.action(description="Mark selected tables as available")
def mark_available(modeladmin, request, queryset):
    _set_availability(queryset, True)


@admin.action(description="Mark selected tables as unavailable")
def mark_unavailable(modeladmin, request, queryset):
    _set_availability(queryset, False)


@admin.register(Table)
class TableAdmin(AdminOnlyModelAdmin):
    list_display = ("name", "capacity", "is_available", "updated_at")
    list_filter = ("is_available",)
    search_fields = ("name",)
    list_editable = ("is_available",)
    ordering = ("id",)
    actions = [mark_available, mark_unavailable]


# =============================================================================
# === RESERVATION ADMIN =======================================================
# =============================================================================

@admin.register(Reservation)
class ReservationAdmin(AdminOnlyModelAdmin):
    """
    Reservation admin. Every lifecycle change goes through ReservationEngine
    so the bound table's flag follows the reservation.

    Bookings are made through the API, where the engine picks the table;
    the admin cannot add reservations or rebind their user or table.
    """

    list_display = ("id", "date", "time", "people", "status", "user", "table", "created_at")
    list_filter = ("status", "date")
    search_fields = ("user__username", "user__email", "table__name")
    list_select_related = ("user", "table")
    readonly_fields = ("user", "table", "created_at", "updated_at")
    ordering = ("-date", "time")
    actions = ["cancel_reservations"]

    def has_add_permission(self, request):
        return False

    def _engine(self, using):
        return ReservationEngine(using=using or "default")

    def _report(self, request, pk, exc):
        logger.error(f"Admin change failed for reservation {pk}: {exc}")
        self.message_user(request, f"Reservation {pk}: {exc}", messages.ERROR)

    def save_model(self, request, obj, form, change):
        try:
            self._engine(obj._state.db).update_reservation(
                obj.pk, date=obj.date, time=obj.time, people=obj.people, status=obj.status
            )
        except ReservationServiceError as exc:
            obj._engine_error = exc
            self._report(request, obj.pk, exc)

    def response_change(self, request, obj):
        if getattr(obj, "_engine_error", None) is not None:
            return HttpResponseRedirect(request.path)
        return super().response_change(request, obj)

    def delete_model(self, request, obj):
        try:
            self._engine(obj._state.db).delete_reservation(obj.pk)
        except ReservationServiceError as exc:
            self._report(request, obj.pk, exc)

    def delete_queryset(self, request, queryset):
        engine = self._engine(queryset.db)
        for pk in queryset.values_list("pk", flat=True):
            try:
                engine.delete_reservation(pk)
            except ReservationServiceError as exc:
                self._report(request, pk, exc)

    @admin.action(description="Cancel selected reservations and free their tables")
    def cancel_reservations(self, request, queryset):
        engine = self._engine(queryset.db)
        cancelled = 0
        for reservation in queryset:
            try:
                engine.cancel_reservation(reservation.pk)
                cancelled += 1
            except ReservationServiceError as exc:
                self._report(request, reservation.pk, exc)
        self.message_user(request, f"Cancelled {cancelled} reservation(s).", messages.SUCCESS)
