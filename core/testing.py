"""Factories shared by the app test suites."""
import json
from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from accounts.models import DonorProfile
from accounts.tokens import make_auth_token
from backoffice.models import StaffProfile
from camps.models import Camp, CampDate
from organizers.models import OrganizerProfile

PASSWORD = "secret123"


def make_user(email, role="DONOR", verified=True, **extra):
    User = get_user_model()
    extra.setdefault("first_name", "Test")
    extra.setdefault("last_name", "User")
    return User.objects.create_user(
        username=email, email=email, password=PASSWORD, role=role, is_verified=verified, **extra
    )


def make_donor(email="donor@example.com", lat=None, lng=None, **profile_fields):
    user = make_user(email, phone_number="0771234567")
    profile = DonorProfile(user=user, latitude=lat, longitude=lng, **profile_fields)
    profile.save()
    return user


def make_organizer(email="organizer@example.com", eligible=True, verified=True):
    user = make_user(email, role="ORGANIZER", verified=verified, phone_number="0112345678")
    OrganizerProfile.objects.create(user=user, organization="Red Drop", city="Colombo", eligible_to_organize=eligible)
    return user


def make_staff(email="staff@example.com", staff_role="superadmin", nic=None):
    user = make_user(email, role="ADMIN")
    StaffProfile.objects.create(user=user, staff_role=staff_role, nic=nic or email.split("@")[0])
    return user


def make_camp(organizer, name="City Hall Camp", lat=6.9271, lng=79.8612, dates=None, status="Open", city="Colombo"):
    camp = Camp.objects.create(
        organizer=organizer,
        name=name,
        operating_hours="9:00 AM - 4:00 PM",
        latitude=lat,
        longitude=lng,
        street="1 Main Street",
        city=city,
        postal_code="00100",
        status=status,
        contact_phone="0112345678",
        contact_email="camp@example.com",
    )
    if dates is None:
        dates = [timezone.localdate() + timedelta(days=7)]
    for d in dates:
        CampDate.objects.create(camp=camp, date=d if isinstance(d, date) else date.fromisoformat(d))
    return camp


def auth(user, **kwargs):
    return {"HTTP_AUTHORIZATION": f"Bearer {make_auth_token(user, **kwargs)}"}


def send_json(client, method, url, data=None, **extra):
    return getattr(client, method)(url, data=json.dumps(data or {}), content_type="application/json", **extra)
