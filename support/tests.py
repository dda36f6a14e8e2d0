from django.core import mail
from django.test import TestCase, override_settings

from core.testing import auth, make_staff, make_user, send_json
from .models import FAQ, ContactMessage, FAQFeedback


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class ContactTests(TestCase):
    message = {
        "name": "Sunil",
        "email": "Sunil@Example.com",
        "subject": "Camp hours",
        "message": "Is the Galle camp open on Sunday?",
    }

    def setUp(self):
        self.support = make_staff("help@example.com", staff_role="support")

    def test_anyone_can_send(self):
        resp = send_json(self.client, "post", "/contact/send", self.message)
        self.assertEqual(resp.status_code, 201, resp.content)
        self.assertEqual(ContactMessage.objects.get().email, "sunil@example.com")

    def test_missing_fields(self):
        resp = send_json(self.client, "post", "/contact/send", {"name": "Sunil"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("email", resp.json()["errors"])

    def test_listing_needs_support_staff(self):
        send_json(self.client, "post", "/contact/send", self.message)
        moderator = make_staff("mod@example.com", staff_role="moderator")
        self.assertEqual(self.client.get("/contact/messages", **auth(moderator)).status_code, 403)
        self.assertEqual(self.client.get("/contact/messages").status_code, 401)

        resp = self.client.get("/contact/messages", **auth(self.support))
        self.assertEqual([m["subject"] for m in resp.json()], ["Camp hours"])

    def test_resolve_emails_the_sender_once(self):
        send_json(self.client, "post", "/contact/send", self.message)
        msg = ContactMessage.objects.get()

        resp = self.client.patch(f"/contact/{msg.pk}/resolve", **auth(self.support))
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertTrue(resp.json()["data"]["resolved"])
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["sunil@example.com"])

        self.client.patch(f"/contact/{msg.pk}/resolve", **auth(self.support))
        self.assertEqual(len(mail.outbox), 1)

        resp = self.client.get("/contact/messages?resolved=false", **auth(self.support))
        self.assertEqual(resp.json(), [])

    def test_resolve_unknown_message(self):
        self.assertEqual(self.client.patch("/contact/999/resolve", **auth(self.support)).status_code, 404)


class FAQTests(TestCase):
    def setUp(self):
        self.staff = make_staff("mod@example.com", staff_role="moderator")
        self.faq = FAQ.objects.create(question="How often can I donate?", answer="Every 56 days.", category="Donation")

    def test_public_list_and_category_filter(self):
        FAQ.objects.create(question="Who runs LifeFlow?", answer="Volunteers.")
        resp = self.client.get("/api/v1/faqs/")
        self.assertEqual(resp.json()["status"], "success")
        self.assertEqual(resp.json()["results"], 2)

        resp = self.client.get("/api/v1/faqs/?category=Donation")
        self.assertEqual([f["id"] for f in resp.json()["data"]["faqs"]], [self.faq.pk])

    def test_create_needs_staff_and_defaults_category(self):
        payload = {"question": "Can I donate with a cold?", "answer": "Wait until you recover."}
        donor = make_user("donor@example.com")
        self.assertEqual(send_json(self.client, "post", "/api/v1/faqs/", payload).status_code, 403)
        self.assertEqual(send_json(self.client, "post", "/api/v1/faqs/", payload, **auth(donor)).status_code, 403)

        resp = send_json(self.client, "post", "/api/v1/faqs/", payload, **auth(self.staff))
        self.assertEqual(resp.status_code, 201, resp.content)
        self.assertEqual(resp.json()["data"]["faq"]["category"], "General")

    def test_update_and_delete(self):
        url = f"/api/v1/faqs/{self.faq.pk}"
        resp = send_json(
            self.client, "patch", url,
            {"question": "How often can I give blood?", "answer": "Every 8 weeks.", "category": "Donation"},
            **auth(self.staff),
        )
        self.assertEqual(resp.status_code, 200, resp.content)
        self.faq.refresh_from_db()
        self.assertEqual(self.faq.answer, "Every 8 weeks.")

        resp = self.client.delete(url, **auth(self.staff))
        self.assertEqual(resp.status_code, 204)
        self.assertFalse(FAQ.objects.exists())

    def test_view_counter(self):
        for _ in range(2):
            resp = self.client.post(f"/api/v1/faqs/{self.faq.pk}/view")
        self.assertEqual(resp.json()["data"]["faq"]["viewCount"], 2)
        self.assertEqual(self.client.post("/api/v1/faqs/999/view").status_code, 404)

    def test_feedback_and_stats(self):
        url = f"/api/v1/faqs/{self.faq.pk}/feedback"
        send_json(self.client, "post", url, {"helpful": True})
        send_json(self.client, "post", url, {"helpful": True, "comment": "Clear"})
        send_json(self.client, "post", url, {"helpful": False})
        self.assertEqual(send_json(self.client, "post", url, {"comment": "?"}).status_code, 400)

        self.faq.refresh_from_db()
        self.assertEqual((self.faq.helpful_count, self.faq.not_helpful_count), (2, 1))
        self.assertEqual(FAQFeedback.objects.count(), 3)

        resp = self.client.get("/api/v1/faqs/stats", **auth(self.staff))
        stats = resp.json()["data"]["stats"][0]
        self.assertAlmostEqual(stats["helpfulRatio"], 2 / 3)

        resp = self.client.get("/api/v1/faqs/feedback", **auth(self.staff))
        self.assertEqual(resp.json()["results"], 3)
        self.assertEqual(self.client.get("/api/v1/faqs/feedback").status_code, 401)
