import shutil
import tempfile

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings

from accounts.models import OneTimePassword
from communication.models import Notification
from core.testing import PASSWORD, auth, make_organizer, make_user, send_json
from .models import OrganizerDocument, OrganizerProfile

LOCMEM = "django.core.mail.backends.locmem.EmailBackend"


@override_settings(EMAIL_BACKEND=LOCMEM)
class OrganizerAccountTests(TestCase):
    payload = {
        "firstName": "Kamala",
        "lastName": "Silva",
        "email": "kamala@redcross.example",
        "password": "secret123",
        "phone": "0112345678",
        "organization": "Red Cross Kandy",
        "address": {"street": "2 Lake Road", "city": "Kandy", "state": "Central"},
    }

    def test_register_verify_then_login(self):
        resp = send_json(self.client, "post", "/organizers/register", self.payload)
        self.assertEqual(resp.status_code, 201, resp.content)
        organizer = resp.json()["organizer"]
        self.assertEqual(organizer["address"]["city"], "Kandy")
        self.assertFalse(organizer["eligibleToOrganize"])
        self.assertEqual(len(mail.outbox), 1)

        code = OneTimePassword.objects.get(email=self.payload["email"], purpose="ORGANIZER").code
        resp = send_json(self.client, "post", "/organizers/verify-otp", {"email": self.payload["email"], "otp": code})
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertIn("token", resp.json())

        resp = send_json(
            self.client, "post", "/organizers/login",
            {"email": self.payload["email"], "password": "secret123"},
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertEqual(resp.json()["organizer"]["organization"], "Red Cross Kandy")

    def test_unverified_login_requires_verification(self):
        organizer = make_organizer(verified=False)
        resp = send_json(self.client, "post", "/organizers/login", {"email": organizer.email, "password": PASSWORD})
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(resp.json()["requiresVerification"])
        self.assertTrue(OneTimePassword.objects.filter(email=organizer.email, purpose="ORGANIZER").exists())

    def test_donor_cannot_use_organizer_login(self):
        donor = make_user("donor@example.com")
        resp = send_json(self.client, "post", "/organizers/login", {"email": donor.email, "password": PASSWORD})
        self.assertEqual(resp.status_code, 403)

    def test_profile_update_is_partial(self):
        organizer = make_organizer()
        resp = send_json(
            self.client, "put", "/organizers/profile",
            {"address": {"city": "Negombo"}}, **auth(organizer),
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        profile = OrganizerProfile.objects.get(user=organizer)
        self.assertEqual(profile.city, "Negombo")
        self.assertEqual(profile.organization, "Red Drop")

    def test_change_password(self):
        organizer = make_organizer()
        resp = send_json(
            self.client, "put", "/organizers/change-password",
            {"currentPassword": PASSWORD, "newPassword": "another1"}, **auth(organizer),
        )
        self.assertEqual(resp.status_code, 200)
        organizer.refresh_from_db()
        self.assertTrue(organizer.check_password("another1"))


@override_settings(EMAIL_BACKEND=LOCMEM)
class OrganizerAdministrationTests(TestCase):
    def setUp(self):
        self.admin = make_user("admin@example.com", role="ADMIN")
        self.organizer = make_organizer(eligible=False)

    def test_granting_eligibility_allows_camp_creation(self):
        camp = {
            "name": "Temple Camp",
            "operatingHours": "9:00 AM - 3:00 PM",
            "location": {"lat": 6.9, "lng": 79.86},
            "address": {"street": "Temple Road", "city": "Colombo", "postalCode": "00500"},
            "contact": {"phone": "0112223344", "email": "temple@example.com"},
            "availableDates": ["2099-01-10"],
        }
        resp = send_json(self.client, "post", "/camps/create", camp, **auth(self.organizer))
        self.assertEqual(resp.status_code, 403)

        resp = send_json(
            self.client, "put", f"/organizers/eligibility/{self.organizer.pk}",
            {"eligibleToOrganize": True}, **auth(self.admin),
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertTrue(Notification.objects.filter(user=self.organizer).exists())

        resp = send_json(self.client, "post", "/camps/create", camp, **auth(self.organizer))
        self.assertEqual(resp.status_code, 201, resp.content)

    def test_ineligible_list(self):
        make_organizer("eligible@example.com", eligible=True)
        resp = self.client.get("/organizers/ineligible", **auth(self.admin))
        self.assertEqual([o["email"] for o in resp.json()["organizers"]], [self.organizer.email])

    def test_admin_only_endpoints(self):
        self.assertEqual(self.client.get("/organizers/all", **auth(self.organizer)).status_code, 403)
        resp = send_json(
            self.client, "put", f"/organizers/eligibility/{self.organizer.pk}",
            {"eligibleToOrganize": True}, **auth(self.organizer),
        )
        self.assertEqual(resp.status_code, 403)

    def test_delete_own_account_or_by_admin(self):
        other = make_organizer("other@example.com")
        self.assertEqual(
            self.client.delete(f"/organizers/{self.organizer.pk}", **auth(other)).status_code, 403
        )
        resp = self.client.delete(f"/organizers/{self.organizer.pk}", **auth(self.admin))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(get_user_model().objects.filter(pk=self.organizer.pk).exists())


class OrganizerDocumentTests(TestCase):
    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, True)
        override = override_settings(MEDIA_ROOT=self.media_root)
        override.enable()
        self.addCleanup(override.disable)

        self.organizer = make_organizer()
        self.admin = make_user("admin@example.com", role="ADMIN")

    def _upload(self, user, *files, document_type="license"):
        return self.client.post(
            "/organizers/documents",
            {"documentType": document_type, "documents": list(files)},
            **auth(user),
        )

    def test_upload_list_verify_download_delete(self):
        pdf = SimpleUploadedFile("licence copy.pdf", b"%PDF-1.4 test", content_type="application/pdf")
        resp = self._upload(self.organizer, pdf)
        self.assertEqual(resp.status_code, 201, resp.content)
        doc_id = resp.json()["documents"][0]["id"]

        doc = OrganizerDocument.objects.get(pk=doc_id)
        self.assertEqual(doc.original_name, "licence copy.pdf")
        self.assertNotIn(" ", doc.file.name)

        resp = self.client.get("/organizers/documents", **auth(self.organizer))
        self.assertEqual([d["id"] for d in resp.json()["documents"]], [doc_id])

        resp = self.client.put(f"/organizers/documents/{doc_id}/verify", **auth(self.admin))
        self.assertTrue(resp.json()["document"]["verified"])

        resp = self.client.get(f"/organizers/documents/{doc_id}/download", **auth(self.organizer))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(b"".join(resp.streaming_content), b"%PDF-1.4 test")

        resp = self.client.delete(f"/organizers/documents/{doc_id}", **auth(self.organizer))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(OrganizerDocument.objects.exists())

    def test_rejects_disallowed_type(self):
        exe = SimpleUploadedFile("tool.exe", b"MZ", content_type="application/octet-stream")
        resp = self._upload(self.organizer, exe)
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(OrganizerDocument.objects.exists())

    def test_other_organizer_cannot_read_document(self):
        pdf = SimpleUploadedFile("a.pdf", b"%PDF", content_type="application/pdf")
        doc_id = self._upload(self.organizer, pdf).json()["documents"][0]["id"]
        other = make_organizer("other@example.com")
        resp = self.client.get(f"/organizers/documents/{doc_id}/download", **auth(other))
        self.assertEqual(resp.status_code, 403)
