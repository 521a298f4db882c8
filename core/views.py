import logging

from django.db.models import ProtectedError
from django.http import HttpResponse, JsonResponse

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .exceptions import NotFound, ValidationError, error_payload
from .models import CustomUser, Table
from .serializers import CustomUserSerializer, ReservationSerializer, TableSerializer
from .services import ReservationEngine

logger = logging.getLogger(__name__)


# ==============================================================================
# ROOT & FALLBACK HANDLERS
# ==============================================================================

def home(request):
    return HttpResponse("Restaurant reservation API", content_type="text/plain")


def not_found(request, exception=None):
    return JsonResponse(error_payload("Not found", 404), status=404)


def server_error(request):
    return JsonResponse(error_payload("Internal server error", 500), status=500)


# ==============================================================================
# RESERVATIONS
# ==============================================================================

class ReservationViewSet(viewsets.ViewSet):
    """Reservation endpoints. Every write goes through the reservation engine."""

    engine = ReservationEngine()
    lookup_value_regex = r"\d+"

    def list(self, request):
        reservations = self.engine.list_reservations()
        return Response(ReservationSerializer(reservations, many=True).data)

    def retrieve(self, request, pk=None):
        reservation = self.engine.get_reservation(pk)
        return Response(ReservationSerializer(reservation).data)

    def create(self, request):
        data = request.data
        reservation = self.engine.create_reservation(
            date=data.get("date"),
            time=data.get("time"),
            people=data.get("people"),
            user_id=data.get("userId"),
        )
        return Response(ReservationSerializer(reservation).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        data = request.data
        reservation = self.engine.update_reservation(
            pk,
            date=data.get("date"),
            time=data.get("time"),
            people=data.get("people"),
            status=data.get("status"),
        )
        return Response(ReservationSerializer(reservation).data)

    @action(detail=True, methods=["put"])
    def cancel(self, request, pk=None):
        reservation = self.engine.cancel_reservation(pk)
        return Response(ReservationSerializer(reservation).data)

    def destroy(self, request, pk=None):
        self.engine.delete_reservation(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ==============================================================================
# TABLES
# ==============================================================================

class TableViewSet(viewsets.ModelViewSet):
    queryset = Table.objects.all().order_by("id")
    serializer_class = TableSerializer
    lookup_value_regex = r"\d+"
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_object(self):
        pk = self.kwargs["pk"]
        table = self.get_queryset().filter(pk=pk).first()
        if table is None:
            raise NotFound(f"Table with id {pk} not found")
        return table

    def create(self, request, *args, **kwargs):
        name = request.data.get("name")
        capacity = request.data.get("capacity")
        if not _is_name(name) or not _is_capacity(capacity):
            raise ValidationError("Name (string) and valid capacity (positive integer) are required")

        table = Table.objects.create(name=name, capacity=int(capacity), is_available=True)
        logger.info(f"Table {table.pk} created ({table.name}, seats {table.capacity}).")
        return Response(TableSerializer(table).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        # Invalid entries are dropped, not rejected; only an empty result is an error.
        data = request.data
        updates = {}
        if _is_name(data.get("name")):
            updates["name"] = data["name"]
        if _is_capacity(data.get("capacity")):
            updates["capacity"] = int(data["capacity"])
        if isinstance(data.get("isAvailable"), bool):
            updates["is_available"] = data["isAvailable"]

        if not updates:
            raise ValidationError("No valid fields to update")

        table = self.get_object()
        for field, value in updates.items():
            setattr(table, field, value)
        table.save(update_fields=[*updates, "updated_at"])
        return Response(TableSerializer(table).data)


def _is_name(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_capacity(value) -> bool:
    # Integral floats such as 4.0 count as integers.
    if isinstance(value, float):
        return value.is_integer() and value >= 1
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


# ==============================================================================
# USERS
# ==============================================================================

class CustomUserViewSet(viewsets.ModelViewSet):
    queryset = CustomUser.objects.all().order_by("id")
    serializer_class = CustomUserSerializer
    lookup_value_regex = r"\d+"
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_object(self):
        pk = self.kwargs["pk"]
        user = self.get_queryset().filter(pk=pk).first()
        if user is None:
            raise NotFound(f"No user with id {pk} found")
        return user

    def create(self, request, *args, **kwargs):
        data = request.data
        if not data.get("username") or not data.get("email") or not data.get("password"):
            raise ValidationError("Username, email or password not specified.")
        return super().create(request, *args, **kwargs)

    def partial_update(self, request, *args, **kwargs):
        data = request.data
        updates = {field: data[field] for field in ("username", "email", "password") if data.get(field)}
        if data.get("isAdmin") is not None:
            updates["isAdmin"] = data["isAdmin"]

        if not updates:
            raise ValidationError("No fields to update")

        user = self.get_object()
        serializer = self.get_serializer(user, data=updates, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def perform_destroy(self, instance):
        try:
            instance.delete()
        except ProtectedError:
            raise ValidationError(f"User with id {instance.pk} still has reservations")
