from datetime import date
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.db import OperationalError
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APITestCase

from .exceptions import NoTableAvailable, NotFound, TableConflict, ValidationError, flatten_detail
from .models import CustomUser, Reservation, Table
from .services import REQUIRED_FIELDS_MESSAGE, ReservationEngine
from .timeslots import normalize_time


def make_user(username="john", email=None, **extra):
    return CustomUser.objects.create_user(
        username=username,
        email=email or f"{username}@example.com",
        password="password123",
        **extra,
    )


class TimeSlotTests(SimpleTestCase):
    def test_normalizes_common_formats(self):
        for raw in ["19:00", "19:00:00", "7:00 PM", "7:00pm", "7 PM", "07:00 pm", " 19:00 "]:
            with self.subTest(raw=raw):
                self.assertEqual(normalize_time(raw), "19:00")

    def test_morning_times(self):
        self.assertEqual(normalize_time("9:30 am"), "09:30")
        self.assertEqual(normalize_time("12 AM"), "00:00")

    def test_unparseable_value_kept_verbatim(self):
        self.assertEqual(normalize_time("  dinner "), "dinner")


class FlattenDetailTests(SimpleTestCase):
    def test_field_errors_are_joined(self):
        detail = {"email": ["Enter a valid email address."], "non_field_errors": ["Bad."]}
        self.assertEqual(flatten_detail(detail), "email: Enter a valid email address.; Bad.")

    def test_detail_key_wins(self):
        self.assertEqual(flatten_detail({"detail": "Not found."}), "Not found.")


# ==============================================================================
# Reservation engine
# ==============================================================================

class ReservationEngineCreateTests(TestCase):
    def setUp(self):
        self.engine = ReservationEngine()
        self.user = make_user()

    def test_books_available_table_and_marks_it_unavailable(self):
        table = Table.objects.create(name="T1", capacity=4)

        reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        self.assertEqual(reservation.status, Reservation.Status.BOOKED)
        self.assertEqual(reservation.table, table)
        self.assertEqual(reservation.user, self.user)
        self.assertEqual(reservation.date, date(2025, 6, 15))
        self.assertEqual(reservation.time, "19:00")
        self.assertEqual(reservation.people, 2)
        table.refresh_from_db()
        self.assertFalse(table.is_available)
        self.assertFalse(reservation.table.is_available)

    def test_takes_first_matching_table_by_id(self):
        small = Table.objects.create(name="Small", capacity=2)
        large = Table.objects.create(name="Large", capacity=6)

        self.assertEqual(self.engine.create_reservation("2025-06-15", "19:00", 3, self.user.pk).table, large)
        self.assertEqual(self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk).table, small)

    def test_no_best_fit_optimisation(self):
        first = Table.objects.create(name="Big", capacity=10)
        Table.objects.create(name="Exact", capacity=2)

        reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        self.assertEqual(reservation.table, first)

    def test_skips_unavailable_tables(self):
        Table.objects.create(name="Taken", capacity=4, is_available=False)
        free = Table.objects.create(name="Free", capacity=4)

        reservation = self.engine.create_reservation("2025-06-15", "19:00", 4, self.user.pk)

        self.assertEqual(reservation.table, free)

    def test_no_table_available_writes_nothing(self):
        table = Table.objects.create(name="T1", capacity=2)

        with self.assertRaises(NoTableAvailable):
            self.engine.create_reservation("2025-06-15", "19:00", 5, self.user.pk)

        self.assertEqual(Reservation.objects.count(), 0)
        table.refresh_from_db()
        self.assertTrue(table.is_available)

    def test_conflicting_active_reservation(self):
        table = Table.objects.create(name="T1", capacity=4)
        Reservation.objects.create(date=date(2025, 6, 15), time="19:00", people=2, user=self.user, table=table)

        with self.assertRaises(TableConflict):
            self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        self.assertEqual(Reservation.objects.count(), 1)

    def test_seated_reservation_also_conflicts(self):
        table = Table.objects.create(name="T1", capacity=4)
        Reservation.objects.create(
            date=date(2025, 6, 15), time="19:00", people=2, user=self.user, table=table,
            status=Reservation.Status.SEATED,
        )

        with self.assertRaises(TableConflict):
            self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

    def test_cancelled_reservation_does_not_conflict(self):
        table = Table.objects.create(name="T1", capacity=4)
        Reservation.objects.create(
            date=date(2025, 6, 15), time="19:00", people=2, user=self.user, table=table,
            status=Reservation.Status.CANCELLED,
        )

        reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        self.assertEqual(reservation.table, table)

    def test_conflict_detected_across_time_formats(self):
        table = Table.objects.create(name="T1", capacity=4)
        Reservation.objects.create(date=date(2025, 6, 15), time="19:00", people=2, user=self.user, table=table)

        with self.assertRaises(TableConflict):
            self.engine.create_reservation("2025-06-15", "7:00 PM", 2, self.user.pk)

    def test_different_time_is_not_a_conflict(self):
        table = Table.objects.create(name="T1", capacity=4)
        Reservation.objects.create(date=date(2025, 6, 15), time="19:00", people=2, user=self.user, table=table)

        reservation = self.engine.create_reservation("2025-06-15", "20:00", 2, self.user.pk)

        self.assertEqual(reservation.table, table)

    def test_lost_claim_raises_conflict_and_rolls_back(self):
        Table.objects.create(name="T1", capacity=4)

        with mock.patch.object(ReservationEngine, "_claim_table", return_value=False):
            with self.assertRaises(TableConflict):
                self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        self.assertEqual(Reservation.objects.count(), 0)

    def test_missing_fields_fail_without_touching_the_store(self):
        cases = [
            ("", "19:00", 2, self.user.pk),
            ("2025-06-15", "", 2, self.user.pk),
            ("2025-06-15", "19:00", None, self.user.pk),
            ("2025-06-15", "19:00", 0, self.user.pk),
            ("2025-06-15", "19:00", -3, self.user.pk),
            ("2025-06-15", "19:00", "many", self.user.pk),
            ("2025-06-15", "19:00", 2, None),
        ]
        for args in cases:
            with self.subTest(args=args):
                with self.assertNumQueries(0):
                    with self.assertRaises(ValidationError) as ctx:
                        self.engine.create_reservation(*args)
                self.assertEqual(str(ctx.exception.detail), REQUIRED_FIELDS_MESSAGE)

    def test_invalid_date(self):
        Table.objects.create(name="T1", capacity=4)

        with self.assertRaises(ValidationError):
            self.engine.create_reservation("2025-02-30", "19:00", 2, self.user.pk)

    def test_accepts_iso_datetime_and_numeric_strings(self):
        Table.objects.create(name="T1", capacity=4)

        reservation = self.engine.create_reservation("2025-06-15T00:00:00Z", "19:00", "2", str(self.user.pk))

        self.assertEqual(reservation.date, date(2025, 6, 15))
        self.assertEqual(reservation.people, 2)

    def test_unknown_user(self):
        Table.objects.create(name="T1", capacity=4)

        with self.assertRaises(ValidationError) as ctx:
            self.engine.create_reservation("2025-06-15", "19:00", 2, 999)

        self.assertEqual(str(ctx.exception.detail), "No user with id 999 found")
        self.assertTrue(Table.objects.get().is_available)


class ReservationEngineLifecycleTests(TestCase):
    def setUp(self):
        self.engine = ReservationEngine()
        self.user = make_user()
        self.table = Table.objects.create(name="T1", capacity=4)
        self.reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

    def test_cancel_sets_status_and_frees_table(self):
        cancelled = self.engine.cancel_reservation(self.reservation.pk)

        self.assertEqual(cancelled.status, Reservation.Status.CANCELLED)
        self.table.refresh_from_db()
        self.assertTrue(self.table.is_available)
        self.assertTrue(cancelled.table.is_available)

    def test_cancel_twice_restores_table_again(self):
        self.engine.cancel_reservation(self.reservation.pk)
        Table.objects.filter(pk=self.table.pk).update(is_available=False)

        self.engine.cancel_reservation(self.reservation.pk)

        self.table.refresh_from_db()
        self.assertTrue(self.table.is_available)

    def test_cancel_without_table(self):
        orphan = Reservation.objects.create(date=date(2025, 6, 16), time="12:00", people=1, user=self.user)

        cancelled = self.engine.cancel_reservation(orphan.pk)

        self.assertEqual(cancelled.status, Reservation.Status.CANCELLED)
        self.assertIsNone(cancelled.table)

    def test_cancel_missing(self):
        with self.assertRaises(NotFound):
            self.engine.cancel_reservation(999)

    def test_delete_removes_record_and_frees_table(self):
        self.engine.delete_reservation(self.reservation.pk)

        self.assertFalse(Reservation.objects.filter(pk=self.reservation.pk).exists())
        self.table.refresh_from_db()
        self.assertTrue(self.table.is_available)
        with self.assertRaises(NotFound):
            self.engine.get_reservation(self.reservation.pk)

    def test_delete_missing(self):
        with self.assertRaises(NotFound):
            self.engine.delete_reservation(999)

    def test_freed_table_can_be_booked_again(self):
        self.engine.cancel_reservation(self.reservation.pk)

        again = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        self.assertEqual(again.table, self.table)

    def test_update_to_seated_keeps_table_held(self):
        updated = self.engine.update_reservation(self.reservation.pk, status="seated")

        self.assertEqual(updated.status, Reservation.Status.SEATED)
        self.table.refresh_from_db()
        self.assertFalse(self.table.is_available)

    def test_update_to_completed_frees_table(self):
        self.engine.update_reservation(self.reservation.pk, status="completed")

        self.table.refresh_from_db()
        self.assertTrue(self.table.is_available)

    def test_update_back_to_booked_reclaims_table(self):
        self.engine.update_reservation(self.reservation.pk, status="cancelled")

        updated = self.engine.update_reservation(self.reservation.pk, status="booked")

        self.assertEqual(updated.status, Reservation.Status.BOOKED)
        self.table.refresh_from_db()
        self.assertFalse(self.table.is_available)

    def test_update_back_to_booked_fails_when_table_taken(self):
        self.engine.cancel_reservation(self.reservation.pk)
        other = make_user("jane")
        self.engine.create_reservation("2025-06-20", "18:00", 2, other.pk)

        with self.assertRaises(TableConflict):
            self.engine.update_reservation(self.reservation.pk, status="booked")

        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, Reservation.Status.CANCELLED)

    def test_update_fields(self):
        updated = self.engine.update_reservation(self.reservation.pk, date="2025-06-16", time="8 pm", people="3")

        self.assertEqual(updated.date, date(2025, 6, 16))
        self.assertEqual(updated.time, "20:00")
        self.assertEqual(updated.people, 3)
        self.assertEqual(updated.status, Reservation.Status.BOOKED)

    def test_update_into_conflicting_slot(self):
        other = Reservation.objects.create(
            date=date(2025, 6, 15), time="21:00", people=2, user=self.user, table=self.table,
        )

        with self.assertRaises(TableConflict):
            self.engine.update_reservation(other.pk, time="7:00 PM")

    def test_update_rejects_invalid_values(self):
        for kwargs in [{"status": "eaten"}, {"people": 0}, {"date": "not-a-date"}]:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ValidationError):
                    self.engine.update_reservation(self.reservation.pk, **kwargs)

    def test_update_missing(self):
        with self.assertRaises(NotFound):
            self.engine.update_reservation(999, status="seated")


class ReconcileAvailabilityTests(TestCase):
    def setUp(self):
        self.engine = ReservationEngine()
        self.user = make_user()

    def test_fixes_drifted_flags(self):
        held = Table.objects.create(name="Held", capacity=4)
        idle = Table.objects.create(name="Idle", capacity=4, is_available=False)
        fine = Table.objects.create(name="Fine", capacity=2)
        Reservation.objects.create(date=date(2025, 6, 15), time="19:00", people=2, user=self.user, table=held)

        corrected = self.engine.reconcile_availability()

        self.assertEqual({t.pk for t in corrected}, {held.pk, idle.pk})
        held.refresh_from_db()
        idle.refresh_from_db()
        fine.refresh_from_db()
        self.assertFalse(held.is_available)
        self.assertTrue(idle.is_available)
        self.assertTrue(fine.is_available)

    def test_command_reports(self):
        Table.objects.create(name="Idle", capacity=4, is_available=False)
        out = StringIO()

        call_command("reconcile_tables", stdout=out)

        self.assertIn("Reconciled 1 table(s)", out.getvalue())
        out = StringIO()
        call_command("reconcile_tables", stdout=out)
        self.assertIn("already consistent", out.getvalue())


# ==============================================================================
# HTTP API
# ==============================================================================

class ReservationApiTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.table = Table.objects.create(name="T1", capacity=4)

    def book(self, **overrides):
        payload = {"date": "2025-06-15", "time": "19:00", "people": 2, "userId": self.user.pk}
        payload.update(overrides)
        return self.client.post("/api/reservations", payload, format="json")

    def test_create_reservation(self):
        response = self.book()

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["status"], "booked")
        self.assertEqual(body["tableId"], self.table.pk)
        self.assertEqual(body["userId"], self.user.pk)
        self.assertEqual(body["date"], "2025-06-15")
        self.assertEqual(body["time"], "19:00")
        self.assertEqual(body["people"], 2)
        self.assertEqual(body["user"]["username"], "john")
        self.assertFalse(body["table"]["isAvailable"])
        self.assertNotIn("password", body["user"])
        self.table.refresh_from_db()
        self.assertFalse(self.table.is_available)

    def test_missing_fields(self):
        response = self.client.post("/api/reservations", {"date": "2025-06-15"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(),
            {"error": {"message": REQUIRED_FIELDS_MESSAGE, "status": 400}},
        )

    def test_no_available_table(self):
        response = self.book(people=10)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "No available table for this party size")

    def test_table_already_reserved(self):
        Reservation.objects.create(date=date(2025, 6, 15), time="19:00", people=2, user=self.user, table=self.table)

        response = self.book()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Table is already reserved for this time")

    def test_list_and_retrieve(self):
        created = self.book().json()

        listing = self.client.get("/api/reservations")
        detail = self.client.get(f"/api/reservations/{created['id']}")

        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.json()), 1)
        self.assertEqual(listing.json()[0]["table"]["name"], "T1")
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["id"], created["id"])

    def test_reads_are_repeatable(self):
        created = self.book().json()

        first = self.client.get(f"/api/reservations/{created['id']}").json()
        second = self.client.get(f"/api/reservations/{created['id']}").json()

        self.assertEqual(first, second)

    def test_retrieve_missing(self):
        response = self.client.get("/api/reservations/999")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": {"message": "Reservation not found", "status": 404}})

    def test_update(self):
        created = self.book().json()

        response = self.client.put(
            f"/api/reservations/{created['id']}", {"people": 3, "status": "seated"}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["people"], 3)
        self.assertEqual(response.json()["status"], "seated")

    def test_update_missing(self):
        response = self.client.put("/api/reservations/999", {"people": 3}, format="json")

        self.assertEqual(response.status_code, 404)

    def test_cancel(self):
        created = self.book().json()

        response = self.client.put(f"/api/reservations/{created['id']}/cancel")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "cancelled")
        self.assertTrue(response.json()["table"]["isAvailable"])
        fetched = self.client.get(f"/api/reservations/{created['id']}").json()
        self.assertEqual(fetched["status"], "cancelled")

    def test_cancel_missing(self):
        response = self.client.put("/api/reservations/999/cancel")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["message"], "Reservation not found")

    def test_delete(self):
        created = self.book().json()

        response = self.client.delete(f"/api/reservations/{created['id']}")

        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.client.get(f"/api/reservations/{created['id']}").status_code, 404)
        self.table.refresh_from_db()
        self.assertTrue(self.table.is_available)

    def test_delete_missing(self):
        self.assertEqual(self.client.delete("/api/reservations/999").status_code, 404)

    def test_unhandled_error_is_reported_as_500(self):
        with mock.patch.object(ReservationEngine, "list_reservations", side_effect=RuntimeError("boom")):
            response = self.client.get("/api/reservations")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": {"message": "Internal server error", "status": 500}})

    def test_malformed_json(self):
        response = self.client.post("/api/reservations", data="{oops", content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["status"], 400)


class TableApiTests(APITestCase):
    def test_create_table(self):
        response = self.client.post("/api/tables", {"name": "Window", "capacity": 4}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["name"], "Window")
        self.assertEqual(response.json()["capacity"], 4)
        self.assertTrue(response.json()["isAvailable"])

    def test_create_ignores_requested_availability(self):
        response = self.client.post(
            "/api/tables", {"name": "Window", "capacity": 4, "isAvailable": False}, format="json"
        )

        self.assertTrue(response.json()["isAvailable"])

    def test_create_invalid(self):
        message = "Name (string) and valid capacity (positive integer) are required"
        for payload in [{"name": "Window"}, {"capacity": 4}, {"name": "W", "capacity": "4"},
                        {"name": "W", "capacity": 0}, {"name": 12, "capacity": 2}]:
            with self.subTest(payload=payload):
                response = self.client.post("/api/tables", payload, format="json")
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["error"]["message"], message)

    def test_integral_float_capacity_is_accepted(self):
        response = self.client.post("/api/tables", {"name": "Window", "capacity": 4.0}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["capacity"], 4)
        table = Table.objects.get()
        patched = self.client.patch(f"/api/tables/{table.pk}", {"capacity": 6.0}, format="json")
        self.assertEqual(patched.json()["capacity"], 6)
        rejected = self.client.post("/api/tables", {"name": "Bar", "capacity": 2.5}, format="json")
        self.assertEqual(rejected.status_code, 400)

    def test_list_and_retrieve(self):
        table = Table.objects.create(name="T1", capacity=2)

        self.assertEqual(len(self.client.get("/api/tables").json()), 1)
        self.assertEqual(self.client.get(f"/api/tables/{table.pk}").json()["name"], "T1")

    def test_retrieve_missing(self):
        response = self.client.get("/api/tables/999")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["message"], "Table with id 999 not found")

    def test_patch_with_no_fields(self):
        table = Table.objects.create(name="T1", capacity=2)

        response = self.client.patch(f"/api/tables/{table.pk}", {}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": {"message": "No valid fields to update", "status": 400}})

    def test_patch_drops_invalid_fields(self):
        table = Table.objects.create(name="T1", capacity=2)

        response = self.client.patch(
            f"/api/tables/{table.pk}", {"name": "Patio", "capacity": 0, "isAvailable": "no"}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        table.refresh_from_db()
        self.assertEqual(table.name, "Patio")
        self.assertEqual(table.capacity, 2)
        self.assertTrue(table.is_available)

    def test_patch_availability(self):
        table = Table.objects.create(name="T1", capacity=2)

        response = self.client.patch(f"/api/tables/{table.pk}", {"isAvailable": False}, format="json")

        self.assertFalse(response.json()["isAvailable"])

    def test_patch_missing(self):
        response = self.client.patch("/api/tables/999", {"name": "Patio"}, format="json")

        self.assertEqual(response.status_code, 404)

    def test_put_not_allowed(self):
        table = Table.objects.create(name="T1", capacity=2)

        response = self.client.put(f"/api/tables/{table.pk}", {"name": "Patio"}, format="json")

        self.assertEqual(response.status_code, 405)

    def test_delete(self):
        table = Table.objects.create(name="T1", capacity=2)

        self.assertEqual(self.client.delete(f"/api/tables/{table.pk}").status_code, 204)
        self.assertEqual(self.client.delete(f"/api/tables/{table.pk}").status_code, 404)

    def test_delete_unbinds_reservations(self):
        user = make_user()
        table = Table.objects.create(name="T1", capacity=2)
        reservation = Reservation.objects.create(
            date=date(2025, 6, 15), time="19:00", people=2, user=user, table=table
        )

        self.client.delete(f"/api/tables/{table.pk}")

        reservation.refresh_from_db()
        self.assertIsNone(reservation.table)


class UserApiTests(APITestCase):
    def test_create_user(self):
        response = self.client.post(
            "/api/users",
            {"username": "john", "email": "john@example.com", "password": "s3cret-pass"},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["username"], "john")
        self.assertFalse(body["isAdmin"])
        self.assertNotIn("password", body)
        user = CustomUser.objects.get(pk=body["id"])
        self.assertNotEqual(user.password, "s3cret-pass")
        self.assertTrue(user.check_password("s3cret-pass"))

    def test_create_admin(self):
        response = self.client.post(
            "/api/users",
            {"username": "boss", "email": "boss@example.com", "password": "pw", "isAdmin": True},
            format="json",
        )

        self.assertTrue(response.json()["isAdmin"])
        self.assertTrue(CustomUser.objects.get(username="boss").is_staff)

    def test_create_missing_fields(self):
        response = self.client.post("/api/users", {"username": "john"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Username, email or password not specified.")

    def test_duplicate_email(self):
        make_user("john", email="john@example.com")

        response = self.client.post(
            "/api/users",
            {"username": "other", "email": "john@example.com", "password": "pw"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["error"]["message"].startswith("email:"))

    def test_list_and_retrieve(self):
        user = make_user()

        self.assertEqual(len(self.client.get("/api/users").json()), 1)
        self.assertEqual(self.client.get(f"/api/users/{user.pk}").json()["email"], "john@example.com")

    def test_retrieve_missing(self):
        response = self.client.get("/api/users/999")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["message"], "No user with id 999 found")

    def test_patch(self):
        user = make_user()

        response = self.client.patch(
            f"/api/users/{user.pk}", {"email": "new@example.com", "isAdmin": True}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        user.refresh_from_db()
        self.assertEqual(user.email, "new@example.com")
        self.assertTrue(user.is_admin)
        self.assertTrue(user.is_staff)

    def test_patch_password_is_hashed(self):
        user = make_user()

        self.client.patch(f"/api/users/{user.pk}", {"password": "changed-pass"}, format="json")

        user.refresh_from_db()
        self.assertTrue(user.check_password("changed-pass"))

    def test_patch_with_no_fields(self):
        user = make_user()

        response = self.client.patch(f"/api/users/{user.pk}", {}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "No fields to update")

    def test_patch_missing(self):
        response = self.client.patch("/api/users/999", {"username": "x"}, format="json")

        self.assertEqual(response.status_code, 404)

    def test_delete(self):
        user = make_user()

        self.assertEqual(self.client.delete(f"/api/users/{user.pk}").status_code, 204)
        self.assertFalse(CustomUser.objects.filter(pk=user.pk).exists())

    def test_delete_missing(self):
        response = self.client.delete("/api/users/999")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": {"message": "No user with id 999 found", "status": 404}})

    def test_delete_with_reservations(self):
        user = make_user()
        Reservation.objects.create(date=date(2025, 6, 15), time="19:00", people=2, user=user)

        response = self.client.delete(f"/api/users/{user.pk}")

        self.assertEqual(response.status_code, 400)
        self.assertTrue(CustomUser.objects.filter(pk=user.pk).exists())


class RootAndFallbackTests(TestCase):
    def test_root_returns_identifier(self):
        response = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"Restaurant reservation API")

    def test_unknown_path_uses_error_shape(self):
        response = self.client.get("/api/nothing-here")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": {"message": "Not found", "status": 404}})

    def test_non_numeric_id_is_not_found(self):
        self.assertEqual(self.client.get("/api/reservations/abc").status_code, 404)


# ==============================================================================
# Audit trail
# ==============================================================================

class AuditLogTests(TestCase):
    def setUp(self):
        self.engine = ReservationEngine()
        self.user = make_user()
        self.table = Table.objects.create(name="T1", capacity=4)

    def test_booking_logs_creation_and_table_claim(self):
        with self.assertLogs("audit", level="INFO") as logs:
            reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        output = "\n".join(logs.output)
        self.assertIn(f"Reservation {reservation.pk} created", output)
        self.assertIn(f"Table {self.table.pk} marked unavailable", output)

    def test_cancel_logs_status_change_and_release(self):
        reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        with self.assertLogs("audit", level="INFO") as logs:
            self.engine.cancel_reservation(reservation.pk)

        output = "\n".join(logs.output)
        self.assertIn("status changed: booked → cancelled", output)
        self.assertIn(f"Table {self.table.pk} marked available", output)

    def test_delete_is_logged(self):
        reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        with self.assertLogs("audit", level="INFO") as logs:
            self.engine.delete_reservation(reservation.pk)

        self.assertIn(f"Reservation {reservation.pk} deleted", "\n".join(logs.output))

    def test_unchanged_flag_is_not_logged_twice(self):
        reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)
        self.engine.cancel_reservation(reservation.pk)

        with self.assertNoLogs("audit", level="INFO"):
            self.engine.cancel_reservation(reservation.pk)

    def test_model_save_flip_is_logged(self):
        self.table.is_available = False

        with self.assertLogs("audit", level="INFO") as logs:
            self.table.save()

        self.assertIn(f"Table {self.table.pk} marked unavailable (via model save)", logs.output[0])


# ==============================================================================
# Admin
# ==============================================================================

class AdminTestCase(TestCase):
    def setUp(self):
        self.admin_user = CustomUser.objects.create_superuser(
            username="admin", email="admin@example.com", password="password123"
        )
        self.client.force_login(self.admin_user)
        self.engine = ReservationEngine()
        self.user = make_user()
        self.table = Table.objects.create(name="T1", capacity=4)


class ReservationAdminTests(AdminTestCase):
    def setUp(self):
        super().setUp()
        self.reservation = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

    def change(self, reservation, **fields):
        data = {"date": "2025-06-15", "time": "19:00", "people": 2, "status": "booked"}
        data.update(fields)
        return self.client.post(f"/admin/core/reservation/{reservation.pk}/change/", data)

    def test_delete_frees_table(self):
        response = self.client.post(
            f"/admin/core/reservation/{self.reservation.pk}/delete/", {"post": "yes"}
        )

        self.assertEqual(response.status_code, 302)
        self.assertFalse(Reservation.objects.exists())
        self.table.refresh_from_db()
        self.assertTrue(self.table.is_available)

    def test_bulk_delete_frees_tables(self):
        other_table = Table.objects.create(name="T2", capacity=4)
        other = self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)
        self.assertEqual(other.table, other_table)

        response = self.client.post("/admin/core/reservation/", {
            "action": "delete_selected",
            "_selected_action": [self.reservation.pk, other.pk],
            "post": "yes",
        })

        self.assertEqual(response.status_code, 302)
        self.assertFalse(Reservation.objects.exists())
        self.assertEqual(Table.objects.filter(is_available=True).count(), 2)

    def test_status_edit_frees_table(self):
        for status in ["cancelled", "completed"]:
            with self.subTest(status=status):
                Table.objects.create(name=f"T-{status}", capacity=4)
                reservation = self.engine.create_reservation("2025-06-16", "20:00", 2, self.user.pk)

                response = self.change(reservation, date="2025-06-16", time="20:00", status=status)

                self.assertEqual(response.status_code, 302)
                reservation.refresh_from_db()
                self.assertEqual(reservation.status, status)
                table = Table.objects.get(pk=reservation.table_id)
                self.assertTrue(table.is_available)

    def test_edit_into_conflict_is_rejected(self):
        self.engine.cancel_reservation(self.reservation.pk)
        self.engine.create_reservation("2025-06-15", "19:00", 2, self.user.pk)

        response = self.change(self.reservation, status="booked")

        self.assertRedirects(
            response, f"/admin/core/reservation/{self.reservation.pk}/change/",
            fetch_redirect_response=False,
        )
        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, Reservation.Status.CANCELLED)

    def test_add_is_not_offered(self):
        response = self.client.get("/admin/core/reservation/add/")

        self.assertEqual(response.status_code, 403)

    def test_cancel_action(self):
        response = self.client.post("/admin/core/reservation/", {
            "action": "cancel_reservations",
            "_selected_action": [self.reservation.pk],
        })

        self.assertEqual(response.status_code, 302)
        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, Reservation.Status.CANCELLED)
        self.table.refresh_from_db()
        self.assertTrue(self.table.is_available)


class TableAdminTests(AdminTestCase):
    def test_mark_unavailable_action_is_audited(self):
        with self.assertLogs("audit", level="INFO") as logs:
            response = self.client.post("/admin/core/table/", {
                "action": "mark_unavailable",
                "_selected_action": [self.table.pk],
            })

        self.assertEqual(response.status_code, 302)
        self.table.refresh_from_db()
        self.assertFalse(self.table.is_available)
        self.assertIn(f"Table {self.table.pk} marked unavailable", "\n".join(logs.output))

    def test_mark_available_action(self):
        Table.objects.filter(pk=self.table.pk).update(is_available=False)

        self.client.post("/admin/core/table/", {
            "action": "mark_available",
            "_selected_action": [self.table.pk],
        })

        self.table.refresh_from_db()
        self.assertTrue(self.table.is_available)


# ==============================================================================
# Management commands
# ==============================================================================

class ManagementCommandTests(TestCase):
    def test_seed_demo_data(self):
        out = StringIO()

        call_command("seed_demo_data", stdout=out)
        call_command("seed_demo_data", stdout=StringIO())

        self.assertEqual(Table.objects.count(), 6)
        self.assertEqual(CustomUser.objects.count(), 3)
        self.assertTrue(CustomUser.objects.get(username="manager").is_staff)
        self.assertIn("Successfully seeded", out.getvalue())

    def test_serve_exits_when_database_unreachable(self):
        with mock.patch("core.management.commands.serve.connections") as connections:
            connections.__getitem__.return_value.ensure_connection.side_effect = OperationalError("down")
            with self.assertRaises(SystemExit) as ctx:
                call_command("serve")

        self.assertEqual(ctx.exception.code, 1)

    def test_serve_starts_server_on_configured_port(self):
        with mock.patch("core.management.commands.serve.call_command") as run, \
                mock.patch("core.management.commands.serve.signal.signal") as install:
            call_command("serve", port=8080)

        run.assert_called_once_with("runserver", "0.0.0.0:8080", use_reloader=False)
        install.assert_called_once()

    def test_serve_help_points_production_at_wsgi(self):
        from .management.commands.serve import Command

        self.assertIn("development server", Command.help)
        self.assertIn("restaurant_reservations.wsgi:application", Command.help)
