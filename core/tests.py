from datetime import date

from django.conf import settings
from django.test import TestCase

from blood.models import DonationRecord
from core.testing import make_camp, make_donor, make_organizer, send_json


class StatsTests(TestCase):
    def setUp(self):
        self.organizer = make_organizer()
        make_camp(self.organizer, name="Colombo Camp", city="Colombo")
        make_camp(self.organizer, name="Fort Camp", city="Colombo")
        make_camp(self.organizer, name="Galle Camp", city="Galle")

        self.a = make_donor("a@example.com", blood_type="O+", city="Colombo")
        self.b = make_donor("b@example.com", blood_type="O+", city="Galle")
        self.c = make_donor("c@example.com", blood_type="not sure", city="Galle")

        DonationRecord.objects.create(donor=self.a, donation_date=date(2025, 1, 10))
        DonationRecord.objects.create(donor=self.a, donation_date=date(2025, 3, 12))
        DonationRecord.objects.create(donor=self.b, donation_date=date(2025, 3, 20))

    def test_summary(self):
        resp = self.client.get("/api/stats/summary-stats")
        self.assertEqual(resp.json(), {"totalCamps": 3, "totalDonors": 2, "totalOrganizers": 1})

    def test_blood_types_skip_unknown(self):
        resp = self.client.get("/api/stats/blood-type-stats")
        self.assertEqual(resp.json(), [{"name": "O+", "value": 2}])

    def test_city_breakdowns(self):
        resp = self.client.get("/api/stats/user-cities")
        self.assertEqual(resp.json(), [{"name": "Galle", "users": 2}, {"name": "Colombo", "users": 1}])

        resp = self.client.get("/api/stats/camp-cities")
        self.assertEqual(resp.json(), [{"name": "Colombo", "camps": 2}, {"name": "Galle", "camps": 1}])

        resp = self.client.get("/api/stats/location-stats")
        self.assertEqual(
            resp.json(),
            [{"name": "Colombo", "camps": 2, "donors": 1}, {"name": "Galle", "camps": 1, "donors": 1}],
        )

    def test_donation_trends_by_month(self):
        resp = self.client.get("/api/stats/donation-trends")
        self.assertEqual(
            resp.json(),
            [{"month": "Jan", "year": 2025, "donors": 1}, {"month": "Mar", "year": 2025, "donors": 2}],
        )


class ApiPlumbingTests(TestCase):
    def test_csrf_token_sets_cookie(self):
        resp = self.client.get("/api/csrf-token")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["csrfToken"])
        self.assertIn(settings.CSRF_COOKIE_NAME, resp.cookies)

    def test_wrong_method_is_405(self):
        resp = self.client.post("/api/stats/summary-stats")
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(resp.json()["code"], "METHOD_NOT_ALLOWED")

    def test_malformed_json_is_400(self):
        resp = self.client.post("/users/register", data="{not json", content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Malformed JSON body")

    def test_non_object_json_is_400(self):
        resp = send_json(self.client, "post", "/contact/send", ["a", "b"])
        self.assertEqual(resp.status_code, 400)

    def test_missing_token_is_401_json(self):
        resp = self.client.get("/api/me")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "UNAUTHORIZED")
