from unittest import mock

from django.core import mail
from django.test import TestCase, override_settings

from communication.models import QueuedEmail
from core.errors import DuplicateBooking, LimitExceeded, NotFound
from core.testing import auth, make_camp, make_donor, make_organizer, make_user, send_json
from . import services
from .models import Appointment


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class AdmissionControlTests(TestCase):
    def setUp(self):
        self.organizer = make_organizer()
        self.donor = make_donor()
        self.camps = [make_camp(self.organizer, name=f"Camp {i}") for i in range(4)]

    def _book(self, camp, time="2:00 PM"):
        return services.create_appointment(self.donor.pk, camp.pk, "2025-07-01", time)

    def test_new_appointment_is_pending_and_donor_is_emailed(self):
        appointment = self._book(self.camps[0])
        self.assertEqual(appointment.status, "Pending")
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("Booking Confirmation", mail.outbox[0].subject)

    def test_failed_confirmation_email_keeps_the_appointment(self):
        with mock.patch("communication.emails.send_mail", side_effect=OSError("smtp down")):
            appointment = self._book(self.camps[0])

        self.assertTrue(Appointment.objects.filter(pk=appointment.pk, status="Pending").exists())
        queued = QueuedEmail.objects.get(to_email=self.donor.email)
        self.assertEqual(queued.attempts, 1)
        self.assertIn("smtp down", queued.last_error)
        self.assertTrue(self.donor.notifications.filter(category="APPOINTMENT").exists())

    def test_fourth_active_appointment_is_refused_until_one_is_cancelled(self):
        first, _, _ = [self._book(c) for c in self.camps[:3]]

        with self.assertRaises(LimitExceeded) as ctx:
            self._book(self.camps[3])
        self.assertEqual(ctx.exception.code, "APPOINTMENT_LIMIT_REACHED")

        services.cancel_appointment(first.pk)
        fourth = self._book(self.camps[3])
        self.assertEqual(fourth.status, "Pending")
        self.assertEqual(Appointment.objects.filter(donor=self.donor).count(), 3)

    def test_confirmed_appointments_count_towards_the_cap(self):
        for camp in self.camps[:3]:
            services.confirm_appointment(self._book(camp).pk)
        with self.assertRaises(LimitExceeded):
            self._book(self.camps[3])

    def test_second_active_booking_for_same_camp_is_refused(self):
        self._book(self.camps[0])
        with self.assertRaises(DuplicateBooking) as ctx:
            self._book(self.camps[0], time="4:00 PM")
        self.assertEqual(ctx.exception.code, "ALREADY_BOOKED")

    def test_cap_is_checked_before_duplicates(self):
        for camp in self.camps[:3]:
            self._book(camp)
        with self.assertRaises(LimitExceeded):
            self._book(self.camps[0])

    def test_unknown_camp_or_donor(self):
        with self.assertRaises(NotFound):
            services.create_appointment(self.donor.pk, 999999, "2025-07-01", "10:00 AM")
        with self.assertRaises(NotFound):
            services.create_appointment(999999, self.camps[0].pk, "2025-07-01", "10:00 AM")

    def test_model_guard_refuses_direct_inserts_over_the_cap(self):
        for camp in self.camps[:3]:
            self._book(camp)
        with self.assertRaises(LimitExceeded):
            Appointment.objects.create(donor=self.donor, camp=self.camps[3], date="2025-07-01", time="1:00 PM")

    def test_cancelled_rows_do_not_count(self):
        Appointment.objects.create(donor=self.donor, camp=self.camps[0], date="2025-07-01", time="1:00 PM",
                                   status="Cancelled")
        self._book(self.camps[0])
        self.assertEqual(Appointment.objects.filter(donor=self.donor, status="Pending").count(), 1)


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class AppointmentApiTests(TestCase):
    def setUp(self):
        self.organizer = make_organizer()
        self.donor = make_donor()
        self.camp = make_camp(self.organizer)
        self.other_camp = make_camp(self.organizer, name="Harbour Camp")

    def _create(self, camp=None, user=None):
        return send_json(
            self.client, "post", "/appointments/create",
            {"campId": (camp or self.camp).pk, "date": "2025-07-01", "time": "2:00 PM"},
            **auth(user or self.donor),
        )

    def test_create_returns_201(self):
        resp = self._create()
        self.assertEqual(resp.status_code, 201, resp.content)
        body = resp.json()
        self.assertEqual(body["status"], "Pending")
        self.assertEqual(body["camp"]["name"], self.camp.name)

    def test_duplicate_booking_is_a_400_with_code(self):
        self._create()
        resp = self._create()
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "ALREADY_BOOKED")

    def test_limit_is_a_400_with_code(self):
        for i in range(3):
            self.assertEqual(self._create(make_camp(self.organizer, name=f"Extra {i}")).status_code, 201)
        resp = self._create()
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "APPOINTMENT_LIMIT_REACHED")

    def test_missing_fields_are_validation_errors(self):
        resp = send_json(self.client, "post", "/appointments/create", {"campId": self.camp.pk}, **auth(self.donor))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "VALIDATION_ERROR")

    def test_anonymous_and_organizer_cannot_book(self):
        resp = send_json(self.client, "post", "/appointments/create", {"campId": self.camp.pk})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(self._create(user=self.organizer).status_code, 403)

    def test_cancel_deletes_the_appointment(self):
        appointment_id = self._create().json()["id"]
        resp = self.client.delete(f"/appointments/cancel/{appointment_id}", **auth(self.donor))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["appointment"]["id"], appointment_id)

        resp = self.client.get(f"/appointments/{appointment_id}", **auth(self.donor))
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(Appointment.objects.filter(pk=appointment_id).exists())

    def test_confirm_after_cancel_is_not_found(self):
        appointment_id = self._create().json()["id"]
        self.client.delete(f"/appointments/cancel/{appointment_id}", **auth(self.donor))
        resp = self.client.patch(f"/appointments/confirm/{appointment_id}", **auth(self.organizer))
        self.assertEqual(resp.status_code, 404)

    def test_camp_organizer_confirms_but_donor_cannot(self):
        appointment_id = self._create().json()["id"]
        self.assertEqual(self.client.patch(f"/appointments/confirm/{appointment_id}", **auth(self.donor)).status_code, 403)

        resp = self.client.patch(f"/appointments/confirm/{appointment_id}", **auth(self.organizer))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["appointment"]["status"], "Confirmed")

    def test_other_organizer_cannot_confirm(self):
        appointment_id = self._create().json()["id"]
        stranger = make_organizer(email="someone@example.com")
        resp = self.client.patch(f"/appointments/confirm/{appointment_id}", **auth(stranger))
        self.assertEqual(resp.status_code, 403)

    def test_reschedule_changes_date_and_time(self):
        appointment_id = self._create().json()["id"]
        resp = send_json(
            self.client, "put", f"/appointments/reschedule/{appointment_id}",
            {"date": "2025-07-05", "time": "9:30 AM"}, **auth(self.donor),
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        appointment = Appointment.objects.get(pk=appointment_id)
        self.assertEqual(appointment.date.isoformat(), "2025-07-05")
        self.assertEqual(appointment.time, "9:30 AM")

    def test_moving_onto_an_already_booked_camp_is_refused(self):
        self._create(self.other_camp)
        appointment_id = self._create().json()["id"]
        resp = send_json(
            self.client, "patch", f"/appointments/{appointment_id}",
            {"campId": self.other_camp.pk}, **auth(self.donor),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "ALREADY_BOOKED")

    def test_list_by_user_is_private(self):
        self._create()
        resp = self.client.get(f"/appointments/getByUser/{self.donor.pk}", **auth(self.donor))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()), 1)

        other = make_user("other@example.com")
        resp = self.client.get(f"/appointments/getByUser/{self.donor.pk}", **auth(other))
        self.assertEqual(resp.status_code, 403)

    def test_camp_users_lists_registered_donors(self):
        self._create()
        resp = self.client.get(f"/camps/{self.camp.pk}/users", **auth(self.organizer))
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertIn(self.donor.email, resp.content.decode())
