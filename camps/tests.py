from datetime import timedelta

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone

from communication.models import Notification
from core.testing import auth, make_camp, make_donor, make_organizer, send_json
from .geo import format_distance, haversine_km, nearby_camps
from .models import Camp

COLOMBO = (6.9271, 79.8612)


def camp_payload(**overrides):
    data = {
        "name": "Town Hall Drive",
        "description": "Annual drive",
        "operatingHours": "8:00 AM - 2:00 PM",
        "location": {"lat": COLOMBO[0], "lng": COLOMBO[1]},
        "address": {"street": "Town Hall Road", "city": "Colombo", "postalCode": "00700"},
        "contact": {"phone": "0112223344", "email": "drive@example.com"},
        "availableDates": ["2030-03-02", "2030-03-01", "2030-03-02"],
    }
    data.update(overrides)
    return data


class GeoTests(TestCase):
    def test_haversine_is_zero_for_same_point(self):
        self.assertAlmostEqual(haversine_km(*COLOMBO, *COLOMBO), 0)

    def test_one_degree_of_latitude_is_about_111_km(self):
        self.assertAlmostEqual(haversine_km(0, 0, 1, 0), 111.19, places=1)

    def test_distance_units(self):
        self.assertEqual(format_distance(0.4567), (457, "m"))
        self.assertEqual(format_distance(3.14159), (3.14, "km"))

    def test_nearby_orders_by_distance_and_respects_radius(self):
        organizer = make_organizer()
        far = make_camp(organizer, name="Kandy", lat=7.2906, lng=80.6337)
        near = make_camp(organizer, name="Fort", lat=6.9344, lng=79.8428)
        nearest = make_camp(organizer, name="Slave Island", lat=6.9271, lng=79.8600)

        found = nearby_camps(*COLOMBO, radius_km=10)
        self.assertEqual([c for c, _ in found], [nearest, near])
        self.assertNotIn(far, [c for c, _ in found])

    def test_nearby_filters_status_and_past_dates(self):
        organizer = make_organizer()
        today = timezone.localdate()
        make_camp(organizer, name="Closed", status="Closed")
        make_camp(organizer, name="Past", dates=[today - timedelta(days=3)])
        ok_camp = make_camp(organizer, name="Open", dates=[today])

        found = nearby_camps(*COLOMBO, 10, statuses=["Open", "Upcoming"], with_future_dates=True, limit=5)
        self.assertEqual([c for c, _ in found], [ok_camp])


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class CampApiTests(TestCase):
    def setUp(self):
        self.organizer = make_organizer()

    def test_eligible_organizer_creates_camp(self):
        resp = send_json(self.client, "post", "/camps/create", camp_payload(), **auth(self.organizer))
        self.assertEqual(resp.status_code, 201, resp.content)
        camp = resp.json()["camp"]
        self.assertEqual(camp["availableDates"], ["2030-03-01", "2030-03-02"])
        self.assertEqual(camp["status"], "Upcoming")
        self.assertEqual(camp["organizer"], self.organizer.pk)

    def test_ineligible_organizer_is_refused(self):
        pending = make_organizer(email="pending@example.com", eligible=False)
        resp = send_json(self.client, "post", "/camps/create", camp_payload(), **auth(pending))
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(Camp.objects.exists())

    def test_donor_cannot_create(self):
        resp = send_json(self.client, "post", "/camps/create", camp_payload(), **auth(make_donor()))
        self.assertEqual(resp.status_code, 403)

    def test_camp_needs_dates(self):
        resp = send_json(self.client, "post", "/camps/create", camp_payload(availableDates=[]), **auth(self.organizer))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("availableDates", resp.json()["errors"])

    def test_nearby_endpoint_reports_distance_and_unit(self):
        make_camp(self.organizer, name="Close", lat=6.9275, lng=79.8615)
        make_camp(self.organizer, name="Further", lat=6.9700, lng=79.8612)
        resp = self.client.get("/camps/nearby", {"lat": COLOMBO[0], "lng": COLOMBO[1], "radius": 10})
        self.assertEqual(resp.status_code, 200)
        rows = resp.json()
        self.assertEqual([r["name"] for r in rows], ["Close", "Further"])
        self.assertEqual(rows[0]["distanceUnit"], "m")
        self.assertEqual(rows[1]["distanceUnit"], "km")

    def test_nearby_requires_coordinates(self):
        resp = self.client.get("/camps/nearby", {"lat": "x"})
        self.assertEqual(resp.status_code, 400)

    def test_only_owner_updates_and_deletes(self):
        camp = make_camp(self.organizer)
        other = make_organizer(email="other@example.com")
        resp = send_json(self.client, "put", f"/camps/update/{camp.pk}", {"name": "Hijack"}, **auth(other))
        self.assertEqual(resp.status_code, 403)

        resp = send_json(self.client, "put", f"/camps/update/{camp.pk}", {"name": "Renamed"}, **auth(self.organizer))
        self.assertEqual(resp.status_code, 200, resp.content)
        camp.refresh_from_db()
        self.assertEqual(camp.name, "Renamed")
        self.assertEqual(camp.city, "Colombo")

        self.assertEqual(self.client.delete(f"/camps/delete/{camp.pk}", **auth(other)).status_code, 403)
        self.assertEqual(self.client.delete(f"/camps/delete/{camp.pk}", **auth(self.organizer)).status_code, 200)
        self.assertEqual(self.client.get(f"/camps/{camp.pk}").status_code, 404)

    def test_upcoming_camps_by_organizer(self):
        today = timezone.localdate()
        make_camp(self.organizer, name="Later", dates=[today + timedelta(days=3)])
        make_camp(self.organizer, name="Over", dates=[today - timedelta(days=3)])
        resp = self.client.get(f"/camps/get-upcoming-camps/{self.organizer.pk}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([c["name"] for c in resp.json()], ["Later"])


class CloseCampsCommandTests(TestCase):
    def test_closes_camps_whose_dates_have_passed(self):
        organizer = make_organizer()
        today = timezone.localdate()
        past = make_camp(organizer, name="Past", dates=[today - timedelta(days=1)])
        current = make_camp(organizer, name="Current", dates=[today - timedelta(days=1), today])

        with self.captureOnCommitCallbacks(execute=True):
            call_command("close_past_camps")

        past.refresh_from_db()
        current.refresh_from_db()
        self.assertEqual(past.status, "Closed")
        self.assertEqual(current.status, "Open")
        self.assertFalse(Notification.objects.filter(title="Blood Donation Camp Closed").exists())
