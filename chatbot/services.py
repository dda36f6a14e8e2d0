"""
One chatbot turn: gather the donor's context, try to book when the
conversation names a camp, date and time, then ask Gemini for the reply.

Bookings go through ``appointments.services.create_appointment`` like any
other caller. Booking failures and LLM failures are reported inside the
returned payload; nothing here raises for them.
"""
import logging

from django.conf import settings
from django.utils import timezone

from appointments.services import create_appointment
from camps.geo import format_distance, nearby_camps
from core.errors import LifeFlowError
from . import slots
from .gemini import GeminiError, generate_reply

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "Sorry, I can't reach the assistant right now. "
    "You can still browse nearby camps and book an appointment from the camps page."
)

TOPICS = (
    "Eligibility criteria for donating blood",
    "The blood donation process",
    "Benefits of donating blood",
    "Preparation before donation",
    "Aftercare following donation",
    "Information about blood types",
    "Frequency of blood donation",
    "Location and timing of blood donation camps",
    "Appointment scheduling",
)


def normalize_history(history):
    """
    Accepts Gemini turns ({role, parts: [{text}]}) or plain ones ({role, content})
    and returns Gemini turns with roles limited to "user" and "model".
    """
    turns = []
    for item in history or []:
        if not isinstance(item, dict):
            continue
        role = "user" if item.get("role") == "user" else "model"
        if isinstance(item.get("parts"), list):
            text = " ".join(
                str(p.get("text", "")) for p in item["parts"] if isinstance(p, dict)
            ).strip()
        else:
            text = str(item.get("content") or item.get("text") or "").strip()
        if text:
            turns.append({"role": role, "parts": [{"text": text}]})
    return turns


def _plain(turns):
    return [{"role": t["role"], "text": t["parts"][0]["text"]} for t in turns]


def _donor_profile(user):
    if user is None or not getattr(user, "is_donor", False):
        return None
    return getattr(user, "donor_profile", None)


def find_nearby_camps(profile):
    if profile is None or profile.latitude is None or profile.longitude is None:
        return []
    return nearby_camps(
        profile.latitude,
        profile.longitude,
        settings.LIFEFLOW_NEARBY_RADIUS_KM,
        statuses=["Open", "Upcoming"],
        with_future_dates=True,
        limit=settings.LIFEFLOW_NEARBY_LIMIT,
    )


def eligibility_info(profile, today=None):
    today = today or timezone.localdate()
    next_date = profile.next_eligible_donation_date
    return {
        "isEligible": profile.is_eligible,
        "isEligibleToDonate": profile.is_eligible_to_donate,
        "nextEligibleDate": next_date.isoformat() if next_date else None,
        "daysUntilEligible": max(0, (next_date - today).days) if next_date else 0,
    }


def _user_details(user, profile):
    if profile is None:
        return None
    location = None
    if profile.latitude is not None and profile.longitude is not None:
        location = {"lat": profile.latitude, "lng": profile.longitude}
    return {
        "name": user.full_name,
        "bloodType": profile.blood_type,
        "location": location,
        "eligibilityStatus": eligibility_info(profile),
        "totalPintsDonated": profile.total_pints_donated or 0,
        "lastPintsDonated": profile.last_pints_donated or 0,
    }


def _camp_summary(camp, km, today):
    distance, unit = format_distance(km)
    return {
        "id": camp.pk,
        "name": camp.name,
        "address": f"{camp.street}, {camp.city}",
        "availableDates": [d.isoformat() for d in camp.future_dates(today)],
        "operatingHours": camp.operating_hours,
        "contact": {"phone": camp.contact_phone, "email": camp.contact_email},
        "distance": distance,
        "distanceUnit": unit,
    }


def try_booking(user, request):
    camp = request["camp"]
    base = {
        "campId": camp.pk,
        "campName": camp.name,
        "date": request["date"].isoformat(),
        "time": request["time"],
    }
    try:
        appointment = create_appointment(user.pk, camp.pk, request["date"], request["time"])
    except LifeFlowError as exc:
        logger.info("Chatbot booking for user %s refused: %s", user.pk, exc.code)
        return {**base, "status": "failed", "code": exc.code, "message": exc.message}
    return {**base, "status": "booked", "appointmentId": appointment.pk,
            "appointmentStatus": appointment.status}


def build_system_prompt(user, profile, camps, booking=None, today=None):
    today = today or timezone.localdate()
    lines = [
        "You are a helpful assistant for a blood donation camp finder website called LifeFlow. "
        "You are answering a user who is interested in donating blood and seeking information. "
        "Only answer questions related to blood donation such as:",
    ]
    lines += [f"- {topic}" for topic in TOPICS]

    if profile is not None:
        info = eligibility_info(profile, today)
        if info["isEligibleToDonate"]:
            status = "Currently eligible to donate"
        elif profile.next_eligible_donation_date:
            status = (
                f"Not eligible yet ({info['daysUntilEligible']} days remaining until "
                f"{profile.next_eligible_donation_date:%b %d, %Y})"
            )
        else:
            status = "Status unknown"
        lines += [
            "",
            "User Information:",
            f"- Name: {user.full_name}",
            f"- Blood Type: {profile.blood_type or 'Not specified'}",
            f"- City: {profile.city or 'Not specified'}",
            f"- Total Pints Donated: {profile.total_pints_donated or 0}",
            f"- Last Pints Donated: {profile.last_pints_donated or 0}",
            f"- Donation Eligibility: {status}",
        ]

    if camps:
        lines += ["", "Nearby Blood Donation Camps:"]
        for index, (camp, _km) in enumerate(camps, start=1):
            dates = ", ".join(f"{d:%b %d, %Y}" for d in camp.future_dates(today))
            lines += [
                f"{index}. {camp.name} - {camp.street}, {camp.city}",
                f"   Available Dates: {dates}",
                f"   Hours: {camp.operating_hours}",
                f"   Contact: {camp.contact_phone}, {camp.contact_email}",
            ]

    if booking is not None:
        lines.append("")
        if booking["status"] == "booked":
            lines.append(
                f"An appointment was just booked for the user at {booking['campName']} on "
                f"{booking['date']} at {booking['time']}. It is pending confirmation. Tell the user."
            )
        else:
            lines.append(
                f"Booking at {booking['campName']} failed: {booking['message']}. "
                "Explain this to the user."
            )
    else:
        lines += [
            "",
            "To book, the user can name a camp (by name or number in the list), a date and a time.",
        ]

    lines += [
        "",
        "For any questions not related to blood donation, politely explain that you can only "
        "provide information about blood donation. Keep responses concise and helpful.",
        "If the user asks about nearby camps or personal eligibility, use the provided user and "
        "camp information to give a personalized response.",
    ]
    return "\n".join(lines)


def _fallback(booking):
    if booking is None:
        return FALLBACK_REPLY
    if booking["status"] == "booked":
        return (
            f"Your appointment at {booking['campName']} on {booking['date']} at "
            f"{booking['time']} has been booked and is pending confirmation."
        )
    return f"I couldn't book that appointment: {booking['message']}"


def handle_turn(user, message, history=None):
    message = (message or "").strip()
    turns = normalize_history(history)
    today = timezone.localdate()

    profile = _donor_profile(user)
    camps = find_nearby_camps(profile)

    booking = None
    request = slots.extract_booking_request(
        message, _plain(turns), [camp for camp, _km in camps], today=today,
    )
    if profile is not None and request["ready"]:
        booking = try_booking(user, request)

    prompt = build_system_prompt(user, profile, camps, booking=booking, today=today)
    try:
        reply = generate_reply(prompt, turns, message)
    except GeminiError as exc:
        logger.warning("Gemini unavailable: %s", exc)
        reply = _fallback(booking)

    return {
        "response": reply,
        "userDetails": _user_details(user, profile),
        "nearbyCamps": [_camp_summary(camp, km, today) for camp, km in camps],
        "booking": booking,
    }
