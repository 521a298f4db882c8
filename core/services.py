"""
services.py

Reservation assignment engine.

Binds reservations to tables and keeps each table's ``is_available`` flag in
step with the reservations that hold it. Every operation runs inside one
transaction on the engine's database alias; the candidate table row is
locked and then claimed with a conditional update, so two requests racing
for the same table cannot both win.
"""

import logging
from datetime import date as date_type, datetime

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .exceptions import NoTableAvailable, NotFound, TableConflict, ValidationError
from .models import CustomUser, Reservation, Table
from .signals import log_table_availability
from .timeslots import normalize_time

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Date, time, people (positive number), and userId are required"
TIME_MAX_LENGTH = Reservation._meta.get_field("time").max_length
RESERVATION_NOT_FOUND = "Reservation not found"


# -----------------------------------------------------------------------------
# Input coercion
# -----------------------------------------------------------------------------

def _coerce_positive_int(value):
    """Return ``value`` as a positive int, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _coerce_date(value):
    """Accept a date, a datetime or an ISO 8601 string; return a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    text = str(value).strip()
    try:
        parsed = parse_date(text)
        if parsed is None:
            moment = parse_datetime(text)
            parsed = moment.date() if moment else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Invalid date: {value}")
    return parsed


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_slot(value):
    slot = normalize_time(value)
    if len(slot) > TIME_MAX_LENGTH:
        raise ValidationError(f"Invalid time: {value}")
    return slot


# -----------------------------------------------------------------------------
# Engine
# -----------------------------------------------------------------------------

class ReservationEngine:
    """
    Reservation lifecycle against one database.

    ``using`` is the Django database alias the engine reads and writes;
    views and commands construct the engine with the alias they serve.
    """

    def __init__(self, using="default"):
        self.using = using

    # --- store handles ---------------------------------------------------

    def _tables(self):
        return Table.objects.using(self.using)

    def _reservations(self):
        return Reservation.objects.using(self.using)

    def _atomic(self):
        return transaction.atomic(using=self.using)

    # --- reads -----------------------------------------------------------

    def list_reservations(self):
        return self._reservations().select_related("user", "table").order_by("pk")

    def get_reservation(self, pk) -> Reservation:
        reservation = self.list_reservations().filter(pk=pk).first()
        if reservation is None:
            raise NotFound(RESERVATION_NOT_FOUND)
        return reservation

    def find_candidate_table(self, party_size, lock=False):
        """First available table (by id) that seats ``party_size``."""
        tables = self._tables().filter(capacity__gte=party_size, is_available=True).order_by("pk")
        if lock:
            tables = tables.select_for_update()
        return tables.first()

    def has_conflict(self, table, reservation_date, slot, exclude_pk=None) -> bool:
        conflicts = self._reservations().for_slot(table, reservation_date, slot).active()
        if exclude_pk is not None:
            conflicts = conflicts.exclude(pk=exclude_pk)
        return conflicts.exists()

    # --- table flag ------------------------------------------------------

    def _claim_table(self, table_id) -> bool:
        """Mark the table unavailable if it still is available."""
        claimed = self._tables().filter(pk=table_id, is_available=True).update(
            is_available=False, updated_at=timezone.now()
        )
        if claimed:
            log_table_availability(table_id, False, "reservation engine")
        return claimed == 1

    def _release_table(self, table_id):
        released = self._tables().filter(pk=table_id, is_available=False).update(
            is_available=True, updated_at=timezone.now()
        )
        if released:
            log_table_availability(table_id, True, "reservation engine")
            logger.info(f"Table {table_id} is available again.")

    def _get_for_update(self, pk) -> Reservation:
        reservation = self._reservations().select_for_update().filter(pk=pk).first()
        if reservation is None:
            raise NotFound(RESERVATION_NOT_FOUND)
        return reservation

    # --- operations ------------------------------------------------------

    def create_reservation(self, date, time, people, user_id) -> Reservation:
        """
        Book the first available table that seats ``people``.

        Raises ValidationError for missing or malformed input (before any
        store access), NoTableAvailable when no table fits, and
        TableConflict when the candidate already has an active reservation
        for the same date and time.
        """
        party_size = _coerce_positive_int(people)
        user_pk = _coerce_positive_int(user_id)
        if _is_blank(date) or _is_blank(time) or party_size is None or user_pk is None:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)

        reservation_date = _coerce_date(date)
        slot = _coerce_slot(time)

        with self._atomic():
            user = CustomUser.objects.using(self.using).filter(pk=user_pk).first()
            if user is None:
                raise ValidationError(f"No user with id {user_pk} found")

            table = self.find_candidate_table(party_size, lock=True)
            if table is None:
                raise NoTableAvailable()

            if self.has_conflict(table, reservation_date, slot):
                raise TableConflict()

            if not self._claim_table(table.pk):
                raise TableConflict()

            reservation = self._reservations().create(
                date=reservation_date,
                time=slot,
                people=party_size,
                status=Reservation.Status.BOOKED,
                user=user,
                table=table,
            )

        logger.info(
            f"Reservation {reservation.pk} booked table {table.pk} "
            f"for {party_size} on {reservation_date} at {slot}."
        )
        return self.get_reservation(reservation.pk)

    def cancel_reservation(self, pk) -> Reservation:
        """
        Mark the reservation cancelled and free its table.

        Cancelling twice runs the release again; there is no special case.
        """
        with self._atomic():
            reservation = self._get_for_update(pk)
            reservation.status = Reservation.Status.CANCELLED
            reservation.save(update_fields=["status", "updated_at"])
            if reservation.table_id:
                self._release_table(reservation.table_id)

        logger.info(f"Reservation {pk} cancelled.")
        return self.get_reservation(pk)

    def delete_reservation(self, pk):
        with self._atomic():
            reservation = self._get_for_update(pk)
            table_id = reservation.table_id
            reservation.delete()
            if table_id:
                self._release_table(table_id)

        logger.info(f"Reservation {pk} deleted.")

    def update_reservation(self, pk, date=None, time=None, people=None, status=None) -> Reservation:
        """
        Apply a partial update and keep the table flag consistent.

        Leaving the active statuses frees the table; coming back claims it
        again. Moving an active reservation to a new date or time re-runs
        the conflict check for its table.
        """
        with self._atomic():
            reservation = self._get_for_update(pk)
            was_active = reservation.is_active
            slot_changed = False

            if not _is_blank(date):
                new_date = _coerce_date(date)
                slot_changed = slot_changed or new_date != reservation.date
                reservation.date = new_date

            if not _is_blank(time):
                new_slot = _coerce_slot(time)
                slot_changed = slot_changed or new_slot != reservation.time
                reservation.time = new_slot

            if people is not None and people != "":
                party_size = _coerce_positive_int(people)
                if party_size is None:
                    raise ValidationError("people must be a positive number")
                reservation.people = party_size

            if status is not None and status != "":
                if status not in Reservation.Status.values:
                    allowed = ", ".join(Reservation.Status.values)
                    raise ValidationError(f"Invalid status: {status}. Expected one of {allowed}")
                reservation.status = status

            if reservation.table_id and reservation.is_active:
                if (slot_changed or not was_active) and self.has_conflict(
                    reservation.table_id, reservation.date, reservation.time, exclude_pk=reservation.pk
                ):
                    raise TableConflict()
                if not was_active and not self._claim_table(reservation.table_id):
                    raise TableConflict()

            reservation.save()

            if reservation.table_id and was_active and not reservation.is_active:
                self._release_table(reservation.table_id)

        logger.info(f"Reservation {pk} updated (status={reservation.status}).")
        return self.get_reservation(pk)

    def reconcile_availability(self):
        """
        Recompute every table's flag from its active reservations.

        Returns the tables whose stored flag had drifted, after fixing them.
        """
        corrected = []
        with self._atomic():
            held = set(
                self._reservations().active().exclude(table=None).values_list("table_id", flat=True)
            )
            for table in self._tables().select_for_update().order_by("pk"):
                should_be_available = table.pk not in held
                if table.is_available != should_be_available:
                    table.is_available = should_be_available
                    table.save(update_fields=["is_available", "updated_at"])
                    corrected.append(table)

        if corrected:
            logger.warning(f"Reconciled availability for tables {[t.pk for t in corrected]}.")
        return corrected
