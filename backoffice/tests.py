from django.test import TestCase, override_settings

from accounts.models import OneTimePassword
from accounts.tokens import read_auth_token
from camps.models import Camp
from communication.models import Notification
from core.testing import PASSWORD, auth, make_camp, make_organizer, make_staff, make_user, send_json
from .models import Approval, StaffProfile

LOCMEM = "django.core.mail.backends.locmem.EmailBackend"


def staff_payload(**overrides):
    data = {
        "fullName": "Ayesha Fernando",
        "email": "ayesha@lifeflow.example",
        "password": "secret123",
        "nic": "199012345678",
        "address": {"street": "4 Park Lane", "city": "Colombo", "state": "Western"},
    }
    data.update(overrides)
    return data


@override_settings(EMAIL_BACKEND=LOCMEM)
class StaffAuthTests(TestCase):
    def test_initialize_only_once(self):
        resp = send_json(self.client, "post", "/admin/initialize", staff_payload())
        self.assertEqual(resp.status_code, 201, resp.content)
        admin = resp.json()["admin"]
        self.assertEqual(admin["role"], "superadmin")
        self.assertEqual(admin["firstName"], "Ayesha")
        self.assertEqual(admin["lastName"], "Fernando")
        self.assertEqual(admin["address"]["city"], "Colombo")

        resp = send_json(self.client, "post", "/admin/initialize", staff_payload(email="two@example.com", nic="2"))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(StaffProfile.objects.count(), 1)

    def test_login_needs_otp_and_token_carries_staff_role(self):
        staff = make_staff("mod@example.com", staff_role="moderator")
        resp = send_json(self.client, "post", "/admin/login", {"email": staff.email, "password": PASSWORD})
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertTrue(resp.json()["requireOTP"])
        self.assertNotIn("token", resp.json())

        code = OneTimePassword.objects.get(email=staff.email, purpose="ADMIN_LOGIN").code
        resp = send_json(self.client, "post", "/admin/verify-otp", {"email": staff.email, "otp": code})
        self.assertEqual(resp.status_code, 200, resp.content)
        claims = read_auth_token(resp.json()["token"])
        self.assertEqual(claims["staff_role"], "moderator")
        self.assertEqual(claims["role"], "ADMIN")

    def test_repeated_login_reuses_live_code(self):
        staff = make_staff()
        send_json(self.client, "post", "/admin/login", {"email": staff.email, "password": PASSWORD})
        code = OneTimePassword.objects.get(email=staff.email).code
        resp = send_json(self.client, "post", "/admin/login", {"email": staff.email, "password": PASSWORD})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(OneTimePassword.objects.get(email=staff.email).code, code)

        resp = send_json(self.client, "post", "/admin/resend-otp", {"email": staff.email})
        self.assertEqual(resp.status_code, 429)

    def test_admin_without_staff_profile_cannot_log_in(self):
        user = make_user("plain-admin@example.com", role="ADMIN")
        resp = send_json(self.client, "post", "/admin/login", {"email": user.email, "password": PASSWORD})
        self.assertEqual(resp.status_code, 404)

    def test_profile_update_and_password_change(self):
        staff = make_staff()
        resp = send_json(
            self.client, "put", "/admin/profile",
            {"firstName": "Renamed", "nic": "should-not-change"}, **auth(staff),
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertEqual(resp.json()["admin"]["firstName"], "Renamed")
        self.assertEqual(resp.json()["admin"]["nic"], "staff")

        resp = send_json(
            self.client, "put", "/admin/change-password",
            {"currentPassword": PASSWORD, "newPassword": PASSWORD}, **auth(staff),
        )
        self.assertEqual(resp.status_code, 400)


@override_settings(EMAIL_BACKEND=LOCMEM)
class StaffManagementTests(TestCase):
    def setUp(self):
        self.superadmin = make_staff("root@example.com", staff_role="superadmin")
        self.moderator = make_staff("mod@example.com", staff_role="moderator")
        self.support = make_staff("help@example.com", staff_role="support")

    def test_only_superadmin_registers_staff(self):
        resp = send_json(self.client, "post", "/admin/register", staff_payload(role="support"), **auth(self.moderator))
        self.assertEqual(resp.status_code, 403)

        resp = send_json(self.client, "post", "/admin/register", staff_payload(role="support"), **auth(self.superadmin))
        self.assertEqual(resp.status_code, 201, resp.content)
        self.assertEqual(resp.json()["admin"]["role"], "support")

        resp = send_json(
            self.client, "post", "/admin/register",
            staff_payload(email="other@example.com"), **auth(self.superadmin),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "CONFLICT")

    def test_admin_list_is_superadmin_only(self):
        resp = self.client.get("/admin/all", **auth(self.superadmin))
        self.assertEqual(len(resp.json()["admins"]), 3)
        self.assertEqual(self.client.get("/admin/all", **auth(self.support)).status_code, 403)

    def test_donor_token_is_not_staff(self):
        donor = make_user("donor@example.com")
        self.assertEqual(self.client.get("/admin/support-admins", **auth(donor)).status_code, 403)
        self.assertEqual(self.client.get("/admin/support-admins").status_code, 401)

    def test_support_admin_management(self):
        resp = self.client.get("/admin/support-admins", **auth(self.support))
        self.assertEqual([a["email"] for a in resp.json()["supportAdmins"]], [self.support.email])

        url = f"/admin/support-admins/{self.support.pk}"
        resp = send_json(self.client, "put", url, {"email": self.moderator.email}, **auth(self.superadmin))
        self.assertEqual(resp.json()["code"], "CONFLICT")

        resp = send_json(self.client, "put", url, {"address": {"city": "Kandy"}}, **auth(self.superadmin))
        self.assertEqual(resp.json()["admin"]["address"]["city"], "Kandy")

        self.assertEqual(self.client.delete(url, **auth(self.moderator)).status_code, 403)
        self.assertEqual(self.client.delete(url, **auth(self.superadmin)).status_code, 200)
        self.assertFalse(StaffProfile.objects.filter(staff_role="support").exists())

        url = f"/admin/support-admins/{self.moderator.pk}"
        self.assertEqual(self.client.delete(url, **auth(self.superadmin)).status_code, 404)


@override_settings(EMAIL_BACKEND=LOCMEM)
class ApprovalTests(TestCase):
    def setUp(self):
        self.moderator = make_staff("mod@example.com", staff_role="moderator")
        self.organizer = make_organizer(verified=False)

    def test_approve_camp_opens_it_and_notifies_organizer(self):
        camp = make_camp(self.organizer, status="Upcoming")
        resp = self.client.post(f"/admin/approve-camp/{camp.pk}", **auth(self.moderator))
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertEqual(Camp.objects.get(pk=camp.pk).status, "Open")
        self.assertTrue(Notification.objects.filter(user=self.organizer, title="Camp approved").exists())

        resp = self.client.post(f"/admin/approve-camp/{camp.pk}", **auth(self.moderator))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "CONFLICT")
        self.assertEqual(resp.json()["message"], "Camp already approved")

    def test_approve_organizer_verifies_account(self):
        resp = self.client.post(f"/admin/approve-organizer/{self.organizer.pk}", **auth(self.moderator))
        self.assertEqual(resp.status_code, 200)
        self.organizer.refresh_from_db()
        self.assertTrue(self.organizer.is_verified)
        approval = Approval.objects.get()
        self.assertEqual((approval.target_type, approval.target_id), ("ORGANIZER", self.organizer.pk))

    def test_approve_user_checks_role_and_staff(self):
        donor = make_user("donor@example.com", verified=False)
        self.assertEqual(
            self.client.post(f"/admin/approve-user/{self.organizer.pk}", **auth(self.moderator)).status_code, 404
        )
        support = make_staff("help@example.com", staff_role="support")
        self.assertEqual(self.client.post(f"/admin/approve-user/{donor.pk}", **auth(support)).status_code, 403)

        self.assertEqual(self.client.post(f"/admin/approve-user/{donor.pk}", **auth(self.moderator)).status_code, 200)
        donor.refresh_from_db()
        self.assertTrue(donor.is_verified)
