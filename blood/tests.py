from datetime import date, timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone

from accounts.models import DonorProfile
from core.testing import auth, make_donor, make_organizer, make_user, send_json
from . import eligibility
from .models import DonationRecord

COMPLETE = {
    "nic_no": "901234567V",
    "blood_type": "O+",
    "date_of_birth": date(1990, 5, 17),
    "street": "12 Lake Road",
    "city": "Kandy",
    "state": "Central",
}


class EligibilityEvaluatorTests(TestCase):
    def test_complete_profile_without_drug_usage_is_eligible(self):
        user = make_donor(**COMPLETE)
        self.assertTrue(user.donor_profile.is_eligible)

    def test_any_missing_field_makes_donor_ineligible(self):
        for i, name in enumerate(eligibility.ELIGIBILITY_FIELDS):
            with self.subTest(missing=name):
                fields = dict(COMPLETE)
                fields[name] = None if name == "date_of_birth" else ""
                user = make_donor(email=f"d{i}@example.com", **fields)
                self.assertFalse(user.donor_profile.is_eligible)

    def test_blank_strings_count_as_missing(self):
        user = make_donor(**dict(COMPLETE, city="   "))
        self.assertFalse(user.donor_profile.is_eligible)

    def test_drug_usage_makes_donor_ineligible(self):
        user = make_donor(drug_usage=True, **COMPLETE)
        self.assertFalse(user.donor_profile.is_eligible)

    def test_flag_is_recomputed_on_every_save(self):
        user = make_donor(**COMPLETE)
        profile = user.donor_profile
        profile.drug_usage = True
        profile.save(update_fields=["drug_usage"])
        profile.refresh_from_db()
        self.assertFalse(profile.is_eligible)

        profile.drug_usage = False
        profile.save()
        profile.refresh_from_db()
        self.assertTrue(profile.is_eligible)

    def test_profile_completeness_needs_user_names_and_phone(self):
        user = make_donor(**COMPLETE)
        self.assertTrue(user.donor_profile.is_profile_complete)
        user.phone_number = ""
        user.save()
        profile = DonorProfile.objects.get(user=user)
        profile.save()
        self.assertFalse(profile.is_profile_complete)

    def test_assessment_needs_weight_and_previous_donation_answer(self):
        user = make_donor(weight=60, donated_before="no")
        self.assertTrue(user.donor_profile.is_assessment_completed)
        other = make_donor(email="other@example.com", weight=60)
        self.assertFalse(other.donor_profile.is_assessment_completed)


class NextEligibleDateTests(TestCase):
    def setUp(self):
        self.user = make_donor(**COMPLETE)

    def _record(self, day, kind="Whole Blood", pints=1):
        return DonationRecord.objects.create(donor=self.user, donation_date=day, donation_type=kind, pints_donated=pints)

    def _profile(self):
        return DonorProfile.objects.get(user=self.user)

    def test_no_history_means_no_date(self):
        self.assertIsNone(self._profile().next_eligible_donation_date)
        self.assertTrue(self._profile().is_eligible_to_donate)

    def test_wait_period_per_donation_type(self):
        day = date(2025, 1, 1)
        for kind, days in eligibility.WAIT_PERIOD_DAYS.items():
            with self.subTest(kind=kind):
                DonationRecord.objects.filter(donor=self.user).delete()
                self._record(day, kind)
                self.assertEqual(self._profile().next_eligible_donation_date, day + timedelta(days=days))

    def test_unknown_type_falls_back_to_56_days(self):
        self._record(date(2025, 3, 1), kind="Granulocytes")
        self.assertEqual(self._profile().next_eligible_donation_date, date(2025, 4, 26))

    def test_backfilled_older_record_does_not_move_the_date(self):
        self._record(date(2025, 5, 1), "Platelets")
        self._record(date(2024, 1, 1), "Double Red Cells")
        profile = self._profile()
        self.assertEqual(profile.last_donation_date, date(2025, 5, 1))
        self.assertEqual(profile.next_eligible_donation_date, date(2025, 5, 8))

    def test_same_day_tie_goes_to_last_appended_record(self):
        self._record(date(2025, 5, 1), "Platelets")
        self._record(date(2025, 5, 1), "Plasma", pints=2)
        profile = self._profile()
        self.assertEqual(profile.next_eligible_donation_date, date(2025, 5, 15))
        self.assertEqual(profile.last_pints_donated, 2)
        self.assertEqual(profile.total_pints_donated, 3)

    def test_recent_donation_blocks_donating(self):
        self._record(timezone.localdate() - timedelta(days=10))
        self.assertFalse(self._profile().is_eligible_to_donate)

    def test_deleting_a_record_recomputes(self):
        first = self._record(date(2025, 1, 1))
        latest = self._record(date(2025, 6, 1))
        latest.delete()
        self.assertEqual(self._profile().last_donation_date, first.donation_date)


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class DonationRecordApiTests(TestCase):
    def setUp(self):
        self.donor = make_donor(**COMPLETE)
        self.organizer = make_organizer()

    def test_organizer_adds_record_and_profile_is_refreshed(self):
        resp = send_json(
            self.client, "post", f"/users/addUserDonationRecord/{self.donor.pk}/donations",
            {"donationDate": "2025-02-01", "donationType": "Plasma", "pintsDonated": 2},
            **auth(self.organizer),
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        body = resp.json()
        self.assertEqual(body["user"]["nextEligibleDonationDate"], "2025-02-15")
        self.assertEqual(body["user"]["totalPintsDonated"], 2)
        self.assertEqual(self.donor.notifications.filter(category="DONATION").count(), 1)

    def test_donor_cannot_add_records(self):
        resp = send_json(
            self.client, "post", f"/users/addUserDonationRecord/{self.donor.pk}/donations",
            {"donationDate": "2025-02-01"}, **auth(self.donor),
        )
        self.assertEqual(resp.status_code, 403)

    def test_invalid_date_is_rejected(self):
        resp = send_json(
            self.client, "post", f"/users/addUserDonationRecord/{self.donor.pk}/donations",
            {"donationDate": "yesterday"}, **auth(self.organizer),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "VALIDATION_ERROR")

    def test_history_visible_to_owner_but_not_other_donors(self):
        DonationRecord.objects.create(donor=self.donor, donation_date=date(2025, 1, 1))
        resp = self.client.get(f"/users/{self.donor.pk}/donations", **auth(self.donor))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["donationHistory"]), 1)

        stranger = make_user("stranger@example.com")
        resp = self.client.get(f"/users/{self.donor.pk}/donations", **auth(stranger))
        self.assertEqual(resp.status_code, 403)


class EligibilityReminderCommandTests(TestCase):
    def test_reminds_donors_whose_wait_ends_today_once(self):
        due = make_donor("due@example.com")
        later = make_donor("later@example.com")
        today = timezone.localdate()
        DonationRecord.objects.create(donor=due, donation_date=today - timedelta(days=56))
        DonationRecord.objects.create(donor=later, donation_date=today - timedelta(days=10))

        out = StringIO()
        call_command("send_donor_eligibility_reminders", stdout=out)
        self.assertIn("Eligibility reminders sent: 1", out.getvalue())
        self.assertEqual(due.notifications.filter(category="DONATION").count(), 1)
        self.assertFalse(later.notifications.exists())
        self.assertEqual(due.queued_emails.count(), 1)

        out = StringIO()
        call_command("send_donor_eligibility_reminders", stdout=out)
        self.assertIn("Eligibility reminders sent: 0", out.getvalue())
