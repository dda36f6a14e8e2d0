from datetime import date, timedelta
from types import SimpleNamespace
from unittest import mock

import requests
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from django.utils import timezone

from appointments.models import Appointment
from core.testing import make_camp, make_donor, make_organizer, send_json
from . import slots
from .consumers import ChatbotConsumer
from .services import FALLBACK_REPLY, handle_turn, normalize_history, try_booking

TODAY = date(2025, 6, 1)  # a Sunday


def fake_camp(pk, name, dates):
    available = [date.fromisoformat(d) for d in dates]
    return SimpleNamespace(pk=pk, name=name, future_dates=lambda today=None: [d for d in available if d >= (today or TODAY)])


def gemini_response(text="Happy to help!", status=200):
    resp = mock.Mock(status_code=status, text="")
    resp.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return resp


class DateParsingTests(SimpleTestCase):
    def parse(self, text):
        return slots.parse_date(text, today=TODAY)

    def test_iso_and_numeric(self):
        self.assertEqual(self.parse("on 2025-06-10 please"), date(2025, 6, 10))
        self.assertEqual(self.parse("5/6/2025"), date(2025, 6, 5))
        self.assertEqual(self.parse("5.6.25"), date(2025, 6, 5))

    def test_month_names(self):
        self.assertEqual(self.parse("June 14th"), date(2025, 6, 14))
        self.assertEqual(self.parse("15th of July"), date(2025, 7, 15))
        self.assertEqual(self.parse("Sept 3, 2026"), date(2026, 9, 3))

    def test_date_without_year_that_has_passed_rolls_over(self):
        self.assertEqual(self.parse("March 3"), date(2026, 3, 3))

    def test_relative_dates(self):
        self.assertEqual(self.parse("tomorrow"), date(2025, 6, 2))
        self.assertEqual(self.parse("next friday"), date(2025, 6, 6))
        self.assertEqual(self.parse("next sunday"), date(2025, 6, 8))

    def test_impossible_or_missing_date(self):
        self.assertIsNone(self.parse("31/02/2025"))
        self.assertIsNone(self.parse("2025-13-01"))
        self.assertIsNone(self.parse("whenever suits"))


class SnapTests(SimpleTestCase):
    available = [date(2025, 6, 1), date(2025, 6, 15)]

    def test_nearest_date_wins(self):
        self.assertEqual(slots.snap_to_available(date(2025, 6, 10), self.available), date(2025, 6, 15))

    def test_tie_goes_to_earlier_date(self):
        self.assertEqual(slots.snap_to_available(date(2025, 6, 8), self.available), date(2025, 6, 1))

    def test_exact_match_and_empty(self):
        self.assertEqual(slots.snap_to_available(date(2025, 6, 15), self.available), date(2025, 6, 15))
        self.assertIsNone(slots.snap_to_available(date(2025, 6, 15), []))


class TimeParsingTests(SimpleTestCase):
    def test_explicit_meridiem(self):
        self.assertEqual(slots.parse_time("at 2pm"), "2:00 PM")
        self.assertEqual(slots.parse_time("2:30 p.m."), "2:30 PM")
        self.assertEqual(slots.parse_time("9 AM"), "9:00 AM")

    def test_inferred_meridiem(self):
        self.assertEqual(slots.parse_time("14:00"), "2:00 PM")
        self.assertEqual(slots.parse_time("9:15"), "9:15 AM")
        self.assertEqual(slots.parse_time("3:00"), "3:00 PM")
        self.assertEqual(slots.parse_time("0:30"), "12:30 AM")

    def test_bare_hour_after_at(self):
        self.assertEqual(slots.parse_time("at 9"), "9:00 AM")
        self.assertEqual(slots.parse_time("around 3 please"), "3:00 PM")
        self.assertEqual(slots.parse_time("by 12"), "12:00 PM")
        self.assertEqual(slots.parse_time("at 25"), slots.DEFAULT_TIME)
        self.assertIsNone(slots.parse_time("at 10th of june"))
        self.assertIsNone(slots.parse_time("at 2025-06-10"))
        self.assertIsNone(slots.parse_time("at 10/6"))

    def test_noon_and_fallbacks(self):
        self.assertEqual(slots.parse_time("around noon"), "12:00 PM")
        self.assertEqual(slots.parse_time("25:00"), slots.DEFAULT_TIME)
        self.assertEqual(slots.parse_time("13pm"), slots.DEFAULT_TIME)
        self.assertIsNone(slots.parse_time("sometime"))


class ExtractionTests(SimpleTestCase):
    def setUp(self):
        self.hall = fake_camp(11, "Town Hall", ["2025-06-01", "2025-06-15"])
        self.temple = fake_camp(12, "Temple Grounds", ["2025-06-20"])
        self.camps = [self.hall, self.temple]

    def extract(self, message, history=()):
        return slots.extract_booking_request(message, list(history), self.camps, today=TODAY)

    def test_resolve_camp_by_name_id_and_position(self):
        self.assertIs(slots.resolve_camp("the temple grounds one", self.camps), self.temple)
        self.assertIs(slots.resolve_camp("camp id 12", self.camps), self.temple)
        self.assertIs(slots.resolve_camp("camp 1", self.camps), self.hall)
        self.assertIsNone(slots.resolve_camp("camp 7", self.camps))

    def test_everything_in_one_message(self):
        result = self.extract("Book Temple Grounds on June 19 at 11am")
        self.assertTrue(result["ready"])
        self.assertIs(result["camp"], self.temple)
        self.assertEqual(result["requested_date"], date(2025, 6, 19))
        self.assertEqual(result["date"], date(2025, 6, 20))
        self.assertEqual(result["time"], "11:00 AM")

    def test_bare_hour_completes_the_request(self):
        result = self.extract("Book Temple Grounds on June 20 at 9")
        self.assertTrue(result["ready"])
        self.assertEqual(result["time"], "9:00 AM")

    def test_slots_are_gathered_from_earlier_user_turns(self):
        history = [
            {"role": "user", "text": "I want to book at Town Hall"},
            {"role": "model", "text": "Which date? Temple Grounds is also open."},
        ]
        result = self.extract("2025-06-10 at 10am", history)
        self.assertTrue(result["ready"])
        self.assertIs(result["camp"], self.hall)
        self.assertEqual(result["date"], date(2025, 6, 15))

    def test_model_turns_are_ignored(self):
        history = [{"role": "model", "text": "Temple Grounds on June 20 at 9am?"}]
        result = self.extract("yes please book it", history)
        self.assertFalse(result["ready"])
        self.assertIs(result["camp"], self.hall)

    def test_intent_defaults_to_first_listed_camp(self):
        result = self.extract("Can I schedule for 2025-06-14 at 1:00?")
        self.assertIs(result["camp"], self.hall)
        self.assertEqual(result["date"], date(2025, 6, 15))
        self.assertEqual(result["time"], "1:00 PM")

    def test_turn_without_new_slot_does_not_rebook(self):
        history = [{"role": "user", "text": "Book Town Hall on 2025-06-15 at 10am"}]
        self.assertFalse(self.extract("thanks!", history)["ready"])

    def test_camp_without_future_dates_is_not_ready(self):
        self.camps = [fake_camp(13, "Closed Hall", ["2025-05-01"])]
        result = self.extract("book closed hall tomorrow at 9am")
        self.assertIsNone(result["date"])
        self.assertFalse(result["ready"])


class HistoryTests(SimpleTestCase):
    def test_accepts_both_shapes(self):
        turns = normalize_history([
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "model", "parts": [{"text": "more"}]},
            {"role": "user", "content": "   "},
            "junk",
        ])
        self.assertEqual(
            turns,
            [
                {"role": "user", "parts": [{"text": "hi"}]},
                {"role": "model", "parts": [{"text": "hello"}]},
                {"role": "model", "parts": [{"text": "more"}]},
            ],
        )


@override_settings(
    GEMINI_API_KEY="test-key",
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
)
class ChatTurnTests(TestCase):
    def setUp(self):
        self.donor = make_donor(lat=6.9271, lng=79.8612, blood_type="O+", city="Colombo")
        self.organizer = make_organizer()
        self.day = timezone.localdate() + timedelta(days=7)
        self.camp = make_camp(self.organizer, dates=[self.day])

    @mock.patch("chatbot.gemini.requests.post")
    def test_booking_turn_creates_appointment(self, post):
        post.return_value = gemini_response("Your appointment is booked.")
        result = handle_turn(self.donor, f"Please book City Hall Camp on {self.day.isoformat()} at 2pm")

        appointment = Appointment.objects.get(donor=self.donor)
        self.assertEqual(appointment.camp, self.camp)
        self.assertEqual(appointment.time, "2:00 PM")
        self.assertEqual(appointment.status, "Pending")

        self.assertEqual(result["response"], "Your appointment is booked.")
        self.assertEqual(result["booking"]["status"], "booked")
        self.assertEqual(result["booking"]["appointmentId"], appointment.pk)
        self.assertEqual(result["nearbyCamps"][0]["id"], self.camp.pk)
        self.assertEqual(result["userDetails"]["bloodType"], "O+")

        payload = post.call_args.kwargs["json"]
        prompt = payload["system_instruction"]["parts"][0]["text"]
        self.assertIn("City Hall Camp", prompt)
        self.assertIn("just booked", prompt)
        self.assertEqual(payload["contents"][-1]["role"], "user")
        self.assertEqual(post.call_args.kwargs["headers"], {"x-goog-api-key": "test-key"})

    @mock.patch("chatbot.gemini.requests.post")
    def test_refused_booking_is_reported_not_raised(self, post):
        post.return_value = gemini_response()
        Appointment.objects.create(donor=self.donor, camp=self.camp, date=self.day, time="9:00 AM")

        result = handle_turn(self.donor, f"book City Hall Camp on {self.day.isoformat()} at 10am")
        self.assertEqual(result["booking"]["status"], "failed")
        self.assertEqual(result["booking"]["code"], "ALREADY_BOOKED")
        self.assertEqual(Appointment.objects.count(), 1)

    @mock.patch("chatbot.gemini.requests.post", side_effect=requests.ConnectionError("offline"))
    def test_gemini_outage_falls_back(self, post):
        result = handle_turn(self.donor, "what should I eat before donating?")
        self.assertEqual(result["response"], FALLBACK_REPLY)
        self.assertIsNone(result["booking"])

    @mock.patch("chatbot.gemini.requests.post", side_effect=requests.ConnectionError("offline"))
    def test_fallback_still_reports_booking(self, post):
        result = handle_turn(self.donor, f"book City Hall Camp on {self.day.isoformat()} at 9am")
        self.assertIn("has been booked", result["response"])

    @mock.patch("chatbot.gemini.requests.post")
    def test_error_status_falls_back(self, post):
        post.return_value = gemini_response(status=500)
        self.assertEqual(handle_turn(None, "hello")["response"], FALLBACK_REPLY)

    @override_settings(GEMINI_API_KEY="")
    @mock.patch("chatbot.gemini.requests.post")
    def test_missing_key_skips_the_call(self, post):
        self.assertEqual(handle_turn(None, "hello")["response"], FALLBACK_REPLY)
        post.assert_not_called()

    @mock.patch("chatbot.gemini.requests.post")
    def test_only_donors_can_book(self, post):
        post.return_value = gemini_response()
        message = f"book City Hall Camp on {self.day.isoformat()} at 10am"
        for user in (None, self.organizer):
            result = handle_turn(user, message)
            self.assertIsNone(result["booking"])
            self.assertEqual(result["nearbyCamps"], [])
        self.assertFalse(Appointment.objects.exists())

    def test_refused_direct_booking_reports_the_error_code(self):
        request = {"camp": self.camp, "date": self.day, "time": ""}
        result = try_booking(self.donor, request)
        self.assertEqual(result["status"], "failed")
        self.assertEqual(result["code"], "VALIDATION_ERROR")

    @mock.patch("chatbot.gemini.requests.post")
    def test_endpoint(self, post):
        post.return_value = gemini_response("Hi there")
        resp = send_json(self.client, "post", "/chatbot/gemini", {"message": "hello", "history": []})
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertEqual(resp.json()["response"], "Hi there")
        self.assertIsNone(resp.json()["userDetails"])

    def test_endpoint_validation(self):
        resp = send_json(self.client, "post", "/chatbot/gemini", {"message": ""})
        self.assertEqual(resp.status_code, 400)
        resp = send_json(self.client, "post", "/chatbot/gemini", {"message": "hi", "history": "nope"})
        self.assertEqual(resp.status_code, 400)


class ChatbotSocketTests(TransactionTestCase):
    async def test_history_is_kept_per_socket(self):
        seen = []

        def fake_turn(user, message, history):
            seen.append((user, message, history))
            return {"response": f"echo {message}", "userDetails": None, "nearbyCamps": [], "booking": None}

        communicator = WebsocketCommunicator(ChatbotConsumer.as_asgi(), "/ws/chatbot/")
        communicator.scope["user"] = AnonymousUser()
        with mock.patch("chatbot.consumers.handle_turn", new=fake_turn):
            connected, _ = await communicator.connect()
            self.assertTrue(connected)

            await communicator.send_json_to({"message": "first"})
            self.assertEqual((await communicator.receive_json_from())["response"], "echo first")
            await communicator.send_json_to({"message": "second"})
            await communicator.receive_json_from()

            await communicator.send_json_to({"message": ""})
            self.assertEqual((await communicator.receive_json_from())["code"], "VALIDATION_ERROR")
            await communicator.disconnect()

        self.assertIsNone(seen[0][0])
        self.assertEqual(seen[0][2], [])
        self.assertEqual(
            seen[1][2],
            [
                {"role": "user", "parts": [{"text": "first"}]},
                {"role": "model", "parts": [{"text": "echo first"}]},
            ],
        )
