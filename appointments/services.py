"""
Appointment admission control and lifecycle.

Every booking path (the REST endpoint and the chatbot) goes through
``create_appointment``. The ordering of checks is part of the contract:
camp and donor must exist, then the active-appointment cap, then the
duplicate (donor, camp) rule, and only then is a Pending row written.
Notifications are best-effort and never undo a committed change.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from camps.forms import parse_date_value
from camps.models import Camp
from communication.services import notify_user_safely
from core.errors import DuplicateBooking, LimitExceeded, NotFound, ValidationFailed
from .models import Appointment, max_active_appointments

logger = logging.getLogger(__name__)

ACTIVE = Appointment.ACTIVE_STATUSES


def _as_date(value):
    try:
        return parse_date_value(value)
    except (TypeError, ValueError):
        raise ValidationFailed("Invalid appointment date")


def _details(appointment, camp=None, date=None, time=None):
    camp = camp or appointment.camp
    return [
        ("Camp", camp.name),
        ("Address", f"{camp.street}, {camp.city}"),
        ("Date", f"{(date or appointment.date):%A, %B %d, %Y}"),
        ("Time", time or appointment.time),
    ]


def create_appointment(donor_id, camp_id, date, time):
    date = _as_date(date)
    time = (time or "").strip()
    if not time:
        raise ValidationFailed("Appointment time is required")

    camp = Camp.objects.filter(pk=camp_id).first()
    if camp is None:
        raise NotFound("Camp not found")

    User = get_user_model()
    try:
        with transaction.atomic():
            # Serialises concurrent bookings for the same donor
            donor = User.objects.select_for_update().filter(pk=donor_id).first()
            if donor is None:
                raise NotFound("User not found")

            limit = max_active_appointments()
            active = Appointment.objects.filter(donor=donor, status__in=ACTIVE)
            if active.count() >= limit:
                logger.info("Donor %s refused: %s active appointments", donor.pk, limit)
                raise LimitExceeded(f"You can only have {limit} active appointments at a time")

            if active.filter(camp=camp).exists():
                raise DuplicateBooking("You have already booked this camp")

            appointment = Appointment.objects.create(
                donor=donor, camp=camp, date=date, time=time, status="Pending",
            )
    except IntegrityError:
        raise DuplicateBooking("You have already booked this camp")

    notify_user_safely(
        donor,
        "Appointment booked",
        body=f"Your appointment at {camp.name} on {date:%b %d, %Y} at {time} is pending confirmation.",
        category="APPOINTMENT",
        level="SUCCESS",
        url="/appointments",
        email={
            "subject": "Appointment Booking Confirmation",
            "heading": "Your blood donation appointment has been booked",
            "lines": ["The camp organizer will confirm your appointment shortly."],
            "details": _details(appointment, camp=camp),
        },
    )
    logger.info("Appointment %s booked for donor %s at camp %s", appointment.pk, donor.pk, camp.pk)
    return appointment


def get_appointment(appointment_id):
    appointment = (
        Appointment.objects
        .select_related("donor", "camp")
        .filter(pk=appointment_id)
        .first()
    )
    if appointment is None:
        raise NotFound("Appointment not found")
    return appointment


def appointments_for_donor(donor_id):
    return (
        Appointment.objects
        .filter(donor_id=donor_id)
        .select_related("camp")
        .prefetch_related("camp__dates")
        .order_by("date", "created_at")
    )


def donors_for_camp(camp):
    qs = (
        Appointment.objects
        .filter(camp=camp)
        .select_related("donor", "donor__donor_profile")
        .order_by("date", "created_at")
    )
    rows = []
    for appointment in qs:
        user = appointment.donor
        profile = getattr(user, "donor_profile", None)
        rows.append({
            "appointmentId": appointment.pk,
            "date": appointment.date.isoformat(),
            "time": appointment.time,
            "status": appointment.status,
            "user": {
                **user.as_dict(),
                "bloodType": profile.blood_type if profile else "",
                "isEligible": profile.is_eligible if profile else False,
            },
        })
    return rows


def confirm_appointment(appointment_id):
    appointment = get_appointment(appointment_id)
    if appointment.status == "Cancelled":
        raise ValidationFailed("A cancelled appointment cannot be confirmed")

    appointment.status = "Confirmed"
    appointment.save(update_fields=["status", "updated_at"])

    notify_user_safely(
        appointment.donor,
        "Appointment confirmed",
        body=f"Your appointment at {appointment.camp.name} on {appointment.date:%b %d, %Y} is confirmed.",
        category="APPOINTMENT",
        level="SUCCESS",
        url="/appointments",
        email={
            "subject": "Appointment Confirmed",
            "heading": "Your blood donation appointment is confirmed",
            "lines": ["Please bring a valid ID and have a light meal before donating."],
            "details": _details(appointment),
        },
    )
    return appointment


def cancel_appointment(appointment_id):
    """Notify from a snapshot, then delete the row. Returns the snapshot."""
    appointment = get_appointment(appointment_id)
    snapshot = appointment.as_dict()
    details = _details(appointment)

    notify_user_safely(
        appointment.donor,
        "Appointment cancelled",
        body=f"Your appointment at {appointment.camp.name} on {appointment.date:%b %d, %Y} "
             f"at {appointment.time} was cancelled.",
        category="APPOINTMENT",
        level="WARNING",
        url="/appointments",
        email={
            "subject": "Appointment Cancelled",
            "heading": "Your blood donation appointment has been cancelled",
            "lines": ["You can book a new appointment at any time."],
            "details": details,
        },
    )

    appointment.delete()
    logger.info("Appointment %s cancelled", appointment_id)
    return snapshot


def update_appointment(appointment_id, date=None, time=None, camp_id=None):
    appointment = get_appointment(appointment_id)
    if appointment.status == "Cancelled":
        raise ValidationFailed("A cancelled appointment cannot be changed")

    old_date, old_time = appointment.date, appointment.time

    if camp_id is not None and camp_id != appointment.camp_id:
        camp = Camp.objects.filter(pk=camp_id).first()
        if camp is None:
            raise NotFound("Camp not found")
        appointment.camp = camp
    if date:
        appointment.date = _as_date(date)
    if time and time.strip():
        appointment.time = time.strip()

    try:
        with transaction.atomic():
            appointment.save()
    except IntegrityError:
        raise DuplicateBooking("You have already booked this camp")

    notify_user_safely(
        appointment.donor,
        "Appointment updated",
        body=f"Your appointment moved from {old_date:%b %d, %Y} {old_time} "
             f"to {appointment.date:%b %d, %Y} {appointment.time}.",
        category="APPOINTMENT",
        url="/appointments",
        email={
            "subject": "Appointment Updated",
            "heading": "Your blood donation appointment has been updated",
            "details": [
                ("Camp", appointment.camp.name),
                ("Previous Date", f"{old_date:%A, %B %d, %Y}"),
                ("Previous Time", old_time),
                ("New Date", f"{appointment.date:%A, %B %d, %Y}"),
                ("New Time", appointment.time),
            ],
        },
    )
    return appointment
