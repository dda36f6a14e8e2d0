from datetime import timedelta
from unittest import mock

from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone

from core.errors import TooManyRequests, Unauthorized, ValidationFailed
from core.testing import PASSWORD, auth, make_donor, make_organizer, make_user, send_json
from . import otp
from .auth import authenticate_token
from .models import CustomUser, DonorProfile, OneTimePassword, RevokedToken
from .tokens import make_auth_token, read_auth_token

LOCMEM = "django.core.mail.backends.locmem.EmailBackend"


def registration(**overrides):
    data = {
        "firstName": "Nimal",
        "lastName": "Perera",
        "email": "Nimal@Example.com",
        "password": "secret123",
        "phoneNumber": "0771234567",
        "bloodType": "A+",
        "address": {"street": "5 Temple Road", "city": "Galle", "state": "Southern"},
    }
    data.update(overrides)
    return data


def live_code(email, purpose):
    return OneTimePassword.objects.get(email=email, purpose=purpose).code


@override_settings(EMAIL_BACKEND=LOCMEM)
class OtpTests(TestCase):
    email = "otp@example.com"

    def test_code_is_six_digits_and_emailed(self):
        record = otp.issue_otp(self.email, "DONOR_LOGIN")
        self.assertRegex(record.code, r"^\d{6}$")
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(record.code, mail.outbox[0].body)

    def test_lifetime_depends_on_purpose(self):
        login = otp.issue_otp(self.email, "DONOR_LOGIN")
        registration_code = otp.issue_otp(self.email, "DONOR_REGISTRATION")
        self.assertEqual(round((login.expires_at - login.created_at).total_seconds()), 5 * 60)
        self.assertEqual(round((registration_code.expires_at - registration_code.created_at).total_seconds()), 15 * 60)

    def test_resend_inside_cooldown_is_refused_with_retry_after(self):
        otp.issue_otp(self.email, "DONOR_LOGIN")
        with self.assertRaises(TooManyRequests) as ctx:
            otp.issue_otp(self.email, "DONOR_LOGIN")
        self.assertGreater(ctx.exception.extra["retryAfter"], 0)
        self.assertLessEqual(ctx.exception.extra["retryAfter"], 60)

    def test_resend_after_cooldown_replaces_the_code(self):
        first = otp.issue_otp(self.email, "DONOR_LOGIN")
        OneTimePassword.objects.filter(pk=first.pk).update(created_at=timezone.now() - timedelta(seconds=61))
        second = otp.issue_otp(self.email, "DONOR_LOGIN")
        self.assertEqual(list(OneTimePassword.objects.filter(email=self.email)), [second])

    def test_wrong_code_counts_attempts_then_locks_out(self):
        record = otp.issue_otp(self.email, "DONOR_LOGIN")
        wrong = "000000" if record.code != "000000" else "111111"
        for remaining in (2, 1, 0):
            with self.assertRaises(ValidationFailed) as ctx:
                otp.verify_otp(self.email, "DONOR_LOGIN", wrong)
            self.assertEqual(ctx.exception.extra["attemptsRemaining"], remaining)

        with self.assertRaises(TooManyRequests):
            otp.verify_otp(self.email, "DONOR_LOGIN", record.code)
        self.assertFalse(OneTimePassword.objects.filter(email=self.email).exists())

    def test_expired_code_is_rejected_and_removed(self):
        record = otp.issue_otp(self.email, "DONOR_LOGIN")
        OneTimePassword.objects.filter(pk=record.pk).update(expires_at=timezone.now() - timedelta(seconds=1))
        with self.assertRaises(ValidationFailed):
            otp.verify_otp(self.email, "DONOR_LOGIN", record.code)
        self.assertFalse(OneTimePassword.objects.exists())

    def test_correct_code_is_single_use(self):
        record = otp.issue_otp(self.email, "DONOR_LOGIN")
        self.assertTrue(otp.verify_otp(self.email, "DONOR_LOGIN", record.code))
        with self.assertRaises(ValidationFailed):
            otp.verify_otp(self.email, "DONOR_LOGIN", record.code)

    def test_purposes_do_not_share_codes(self):
        record = otp.issue_otp(self.email, "DONOR_LOGIN")
        with self.assertRaises(ValidationFailed):
            otp.verify_otp(self.email, "ADMIN_LOGIN", record.code)


class TokenTests(TestCase):
    def test_claims(self):
        user = make_donor()
        claims = read_auth_token(make_auth_token(user))
        self.assertEqual(claims["sub"], str(user.pk))
        self.assertEqual(claims["role"], "DONOR")
        self.assertNotIn("staff_role", claims)
        self.assertIn("jti", claims)

    def test_revoked_token_is_refused(self):
        user = make_donor()
        token = make_auth_token(user)
        claims = read_auth_token(token)
        RevokedToken.objects.create(jti=claims["jti"], expires_at=timezone.now() + timedelta(days=1))
        with self.assertRaisesMessage(Unauthorized, "Token has been revoked"):
            authenticate_token(token)

    @override_settings(LIFEFLOW_JWT_LIFETIME_SECONDS=-1)
    def test_expired_token_is_refused(self):
        user = make_donor()
        resp = self.client.get("/api/me", **auth(user))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "Token expired")

    def test_purge_command_removes_stale_rows(self):
        RevokedToken.objects.create(jti="old", expires_at=timezone.now() - timedelta(hours=1))
        RevokedToken.objects.create(jti="live", expires_at=timezone.now() + timedelta(hours=1))
        OneTimePassword.objects.create(
            email="x@example.com", purpose="DONOR_LOGIN", code="123456",
            expires_at=timezone.now() - timedelta(minutes=1),
        )
        call_command("purge_expired_auth")
        self.assertEqual(list(RevokedToken.objects.values_list("jti", flat=True)), ["live"])
        self.assertFalse(OneTimePassword.objects.exists())


@override_settings(EMAIL_BACKEND=LOCMEM)
class DonorRegistrationTests(TestCase):
    def test_register_then_verify(self):
        resp = send_json(self.client, "post", "/users/register", registration())
        self.assertEqual(resp.status_code, 201, resp.content)

        user = CustomUser.objects.get(email="nimal@example.com")
        self.assertFalse(user.is_verified)
        self.assertEqual(user.donor_profile.city, "Galle")
        self.assertEqual(len(mail.outbox), 1)

        code = live_code(user.email, "DONOR_REGISTRATION")
        resp = send_json(self.client, "post", "/users/verify-otp", {"email": user.email, "otp": code})
        self.assertEqual(resp.status_code, 200, resp.content)
        user.refresh_from_db()
        self.assertTrue(user.is_verified)

    def test_duplicate_email_is_refused(self):
        send_json(self.client, "post", "/users/register", registration())
        resp = send_json(self.client, "post", "/users/register", registration(email="nimal@example.com"))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "CONFLICT")

    def test_missing_fields_are_reported(self):
        resp = send_json(self.client, "post", "/users/register", {"email": "a@example.com"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("firstName", resp.json()["errors"])

    def test_malformed_otp_is_validation_error(self):
        resp = send_json(self.client, "post", "/users/verify-otp", {"email": "a@example.com", "otp": "12ab"})
        self.assertEqual(resp.status_code, 400)

    def test_resend_respects_cooldown(self):
        send_json(self.client, "post", "/users/register", registration())
        resp = send_json(self.client, "post", "/users/resend-otp", {"email": "nimal@example.com"})
        self.assertEqual(resp.status_code, 429)
        self.assertIn("retryAfter", resp.json())


@override_settings(EMAIL_BACKEND=LOCMEM)
class SessionTests(TestCase):
    def setUp(self):
        self.user = make_donor()

    def _login(self, password=PASSWORD, email=None):
        return send_json(self.client, "post", "/api/login", {"email": email or self.user.email, "password": password})

    def test_login_sets_cookie_and_returns_token(self):
        resp = self._login()
        self.assertEqual(resp.status_code, 200, resp.content)
        body = resp.json()
        self.assertEqual(body["user"]["email"], self.user.email)
        self.assertEqual(resp.cookies["authToken"].value, body["token"])
        self.assertTrue(resp.cookies["authToken"]["httponly"])

        resp = self.client.get("/auth/me")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["id"], self.user.pk)

    def test_wrong_password_and_unknown_email(self):
        self.assertEqual(self._login(password="nope").status_code, 401)
        self.assertEqual(self._login(email="ghost@example.com").status_code, 404)

    def test_organizer_cannot_use_donor_login(self):
        organizer = make_organizer()
        self.assertEqual(self._login(email=organizer.email).status_code, 403)

    def test_unverified_donor_gets_otp_and_403(self):
        unverified = make_user("new@example.com", verified=False)
        resp = self._login(email=unverified.email)
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(resp.json()["requiresVerification"])

        code = live_code(unverified.email, "DONOR_LOGIN")
        resp = send_json(self.client, "post", "/api/verify-login-otp", {"email": unverified.email, "otp": code})
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertIn("token", resp.json())

    def test_logout_revokes_the_token(self):
        token = self._login().json()["token"]
        header = {"HTTP_AUTHORIZATION": f"Bearer {token}"}
        self.assertEqual(self.client.get("/api/me", **header).status_code, 200)

        resp = self.client.post("/api/logout", **header)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.cookies["authToken"].value, "")

        resp = self.client.get("/api/me", **header)
        self.assertEqual(resp.status_code, 401)

    def test_verify_session_reports_role(self):
        resp = self.client.get("/auth/verify", **auth(self.user))
        self.assertEqual(resp.json()["user"]["role"], "DONOR")
        self.assertEqual(self.client.get("/auth/verify").status_code, 401)

    def test_login_email_failure_does_not_fail_login(self):
        with mock.patch("communication.emails.send_mail", side_effect=OSError("smtp down")):
            resp = self._login()
        self.assertEqual(resp.status_code, 200)


class DonorManagementTests(TestCase):
    def setUp(self):
        self.user = make_donor()
        self.admin = make_user("admin@example.com", role="ADMIN")

    def test_partial_update_keeps_other_fields(self):
        profile = self.user.donor_profile
        profile.nic_no = "901234567V"
        profile.save()

        resp = send_json(
            self.client, "put", f"/users/updateUser/{self.user.pk}",
            {"bloodType": "B-", "address": {"city": "Matara"}, "isEligible": True},
            **auth(self.user),
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        profile = DonorProfile.objects.get(user=self.user)
        self.assertEqual(profile.blood_type, "B-")
        self.assertEqual(profile.city, "Matara")
        self.assertEqual(profile.nic_no, "901234567V")
        self.assertFalse(profile.is_eligible)

    def test_update_recomputes_eligibility(self):
        resp = send_json(
            self.client, "put", f"/users/updateUser/{self.user.pk}",
            {
                "nicNo": "901234567V", "bloodType": "O-", "dateOfBirth": "1990-01-01",
                "address": {"street": "1 Road", "city": "Galle", "state": "Southern"},
                "drugUsage": False,
            },
            **auth(self.user),
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertTrue(resp.json()["user"]["isEligible"])

    def test_other_donor_cannot_update_or_delete(self):
        other = make_user("other@example.com")
        resp = send_json(self.client, "put", f"/users/updateUser/{self.user.pk}", {"bloodType": "A+"}, **auth(other))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self.client.delete(f"/users/deleteUser/{self.user.pk}", **auth(other)).status_code, 403)

    def test_donor_cannot_delete_own_account(self):
        resp = self.client.delete(f"/users/deleteUser/{self.user.pk}", **auth(self.user))
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(CustomUser.objects.filter(pk=self.user.pk).exists())

    def test_admin_lists_and_deletes(self):
        resp = self.client.get("/users/allUsers", **auth(self.admin))
        self.assertEqual([u["email"] for u in resp.json()["users"]], [self.user.email])
        self.assertEqual(self.client.get("/users/allUsers", **auth(self.user)).status_code, 403)

        resp = self.client.delete(f"/users/deleteUser/{self.user.pk}", **auth(self.admin))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(CustomUser.objects.filter(pk=self.user.pk).exists())
