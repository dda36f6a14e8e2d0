from io import StringIO
from unittest import mock

from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings

from core.testing import auth, make_donor, make_user
from .emails import send_message_email
from .models import Notification, QueuedEmail
from .services import broadcast_after_commit, notify_user, notify_user_safely

LOCMEM = "django.core.mail.backends.locmem.EmailBackend"


@override_settings(EMAIL_BACKEND=LOCMEM)
class EmailTests(TestCase):
    def test_message_email_renders_text_and_html(self):
        sent = send_message_email(
            "donor@example.com",
            subject="Appointment confirmed",
            heading="See you soon",
            lines=["Bring your ID."],
            details=[("Camp", "City Hall")],
            name="Nimal",
        )
        self.assertTrue(sent)
        message = mail.outbox[0]
        self.assertIn("Bring your ID.", message.body)
        self.assertIn("City Hall", message.body)
        self.assertEqual(message.alternatives[0][1], "text/html")

    def test_failed_send_is_queued(self):
        user = make_user("donor@example.com")
        with mock.patch("communication.emails.send_mail", side_effect=OSError("smtp down")):
            sent = send_message_email(user.email, subject="Hello", heading="Hi", user=user)
        self.assertFalse(sent)
        queued = QueuedEmail.objects.get()
        self.assertEqual((queued.to_email, queued.status, queued.attempts), (user.email, "PENDING", 1))
        self.assertIn("smtp down", queued.last_error)

    def test_queue_command_sends_and_retries(self):
        ok_row = QueuedEmail.objects.create(to_email="a@example.com", subject="A", body="body")
        bad_row = QueuedEmail.objects.create(to_email="b@example.com", subject="B", body="body", attempts=2)

        real_send = mail.send_mail

        def flaky(subject, *args, **kwargs):
            if subject == "B":
                raise OSError("rejected")
            return real_send(subject, *args, **kwargs)

        out = StringIO()
        with mock.patch("communication.management.commands.send_queued_emails.send_mail", side_effect=flaky):
            call_command("send_queued_emails", stdout=out)

        ok_row.refresh_from_db()
        bad_row.refresh_from_db()
        self.assertEqual(ok_row.status, "SENT")
        self.assertIsNotNone(ok_row.sent_at)
        self.assertEqual((bad_row.status, bad_row.attempts), ("FAILED", 3))
        self.assertIn("Sent: 1, Failed: 1", out.getvalue())

        out = StringIO()
        call_command("send_queued_emails", stdout=out)
        self.assertIn("No queued emails.", out.getvalue())


@override_settings(EMAIL_BACKEND=LOCMEM)
class NotificationTests(TestCase):
    def setUp(self):
        self.user = make_donor()

    def test_notify_user_with_email(self):
        notify_user(self.user, "Welcome", body="Hi", email={"subject": "Welcome", "heading": "Hello"})
        self.assertEqual(Notification.objects.get().title, "Welcome")
        self.assertEqual(mail.outbox[0].subject, "Welcome")

    def test_safe_variant_swallows_failures(self):
        with mock.patch("communication.services.Notification.objects.create", side_effect=RuntimeError("db")):
            with self.assertLogs("communication.services", level="ERROR"):
                notify_user_safely(self.user, "Lost")

    def test_broadcast_runs_after_commit(self):
        other = make_user("other@example.com")
        users = type(self.user).objects.filter(pk__in=[self.user.pk, other.pk])
        with self.captureOnCommitCallbacks(execute=True):
            broadcast_after_commit(users, "Camp nearby", email_subject="Camp", email_body="Come along")
            self.assertFalse(Notification.objects.exists())
        self.assertEqual(Notification.objects.filter(title="Camp nearby").count(), 2)
        self.assertEqual(QueuedEmail.objects.count(), 2)

    def test_inbox_and_read_state(self):
        first = Notification.objects.create(user=self.user, title="One")
        Notification.objects.create(user=self.user, title="Two")
        Notification.objects.create(user=make_user("x@example.com"), title="Not yours")

        resp = self.client.get("/notifications/", **auth(self.user))
        self.assertEqual(resp.json()["unread"], 2)
        self.assertEqual({n["title"] for n in resp.json()["notifications"]}, {"One", "Two"})

        resp = self.client.post(f"/notifications/{first.pk}/read", **auth(self.user))
        self.assertTrue(resp.json()["notification"]["read"])
        resp = self.client.get("/notifications/?unread=1", **auth(self.user))
        self.assertEqual([n["title"] for n in resp.json()["notifications"]], ["Two"])

        resp = self.client.post("/notifications/read-all", **auth(self.user))
        self.assertEqual(resp.json()["updated"], 1)

    def test_cannot_read_someone_elses_notification(self):
        theirs = Notification.objects.create(user=make_user("x@example.com"), title="Private")
        resp = self.client.post(f"/notifications/{theirs.pk}/read", **auth(self.user))
        self.assertEqual(resp.status_code, 404)
