from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone

from blood import eligibility


class CustomUser(AbstractUser):
    """
    Every account in the system. Donors, camp organizers and back-office
    staff share this table and are told apart by ``role``.
    """
    ROLES = [
        ("DONOR", "Donor"),
        ("ORGANIZER", "Organizer"),
        ("ADMIN", "Admin"),
    ]

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=ROLES, default="DONOR", db_index=True)
    is_verified = models.BooleanField(default=False)
    phone_number = models.CharField(max_length=20, blank=True)

    def __str__(self):
        return self.email

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_donor(self):
        return self.role == "DONOR"

    @property
    def is_organizer(self):
        return self.role == "ORGANIZER"

    @property
    def is_admin(self):
        return self.role == "ADMIN"

    def as_dict(self):
        return {
            "id": self.pk,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "role": self.role,
            "isVerified": self.is_verified,
            "createdAt": self.date_joined.isoformat() if self.date_joined else None,
        }


class DonorProfile(models.Model):
    BLOOD_TYPES = (
        ("A+", "A+"), ("A-", "A-"),
        ("B+", "B+"), ("B-", "B-"),
        ("AB+", "AB+"), ("AB-", "AB-"),
        ("O+", "O+"), ("O-", "O-"),
        ("not sure", "Not sure"),
    )
    DONATED_BEFORE = (("yes", "Yes"), ("no", "No"))

    DERIVED_FIELDS = (
        "is_eligible",
        "is_profile_complete",
        "is_assessment_completed",
        "last_donation_date",
        "last_pints_donated",
        "next_eligible_donation_date",
        "total_pints_donated",
    )

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="donor_profile")

    nic_no = models.CharField(max_length=20, blank=True)
    blood_type = models.CharField(max_length=8, choices=BLOOD_TYPES, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)

    street = models.CharField(max_length=200, blank=True)
    city = models.CharField(max_length=100, blank=True, db_index=True)
    state = models.CharField(max_length=100, blank=True)
    zip_code = models.CharField(max_length=20, blank=True)

    # Location for nearby camps
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    # Self assessment
    weight = models.FloatField(null=True, blank=True)
    health_conditions = models.JSONField(default=list, blank=True)
    drug_usage = models.BooleanField(default=False)
    donated_before = models.CharField(max_length=3, choices=DONATED_BEFORE, blank=True)
    additional_info = models.TextField(blank=True)

    # Derived on every save, never taken from input
    is_eligible = models.BooleanField(default=False)
    is_profile_complete = models.BooleanField(default=False)
    is_assessment_completed = models.BooleanField(default=False)
    last_donation_date = models.DateField(null=True, blank=True)
    last_pints_donated = models.PositiveSmallIntegerField(null=True, blank=True)
    next_eligible_donation_date = models.DateField(null=True, blank=True)
    total_pints_donated = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"Donor profile of {self.user.email}"

    def donation_records_in_order(self):
        if not self.user_id:
            return []
        return self.user.donation_records.order_by("created_at", "id")

    def save(self, *args, **kwargs):
        eligibility.refresh_derived_fields(self)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | set(self.DERIVED_FIELDS)
        super().save(*args, **kwargs)

    @property
    def is_eligible_to_donate(self):
        return eligibility.is_eligible_to_donate(self)

    def as_dict(self):
        def _iso(d):
            return d.isoformat() if d else None

        return {
            "nicNo": self.nic_no,
            "bloodType": self.blood_type,
            "dateOfBirth": _iso(self.date_of_birth),
            "address": {
                "street": self.street,
                "city": self.city,
                "state": self.state,
                "zipCode": self.zip_code,
            },
            "location": (
                {"lat": self.latitude, "lng": self.longitude}
                if self.latitude is not None and self.longitude is not None else None
            ),
            "weight": self.weight,
            "healthConditions": self.health_conditions,
            "drugUsage": self.drug_usage,
            "donatedBefore": self.donated_before,
            "additionalInfo": self.additional_info,
            "isEligible": self.is_eligible,
            "isEligibleToDonate": self.is_eligible_to_donate,
            "isProfileComplete": self.is_profile_complete,
            "isAssessmentCompleted": self.is_assessment_completed,
            "lastDonationDate": _iso(self.last_donation_date),
            "nextEligibleDonationDate": _iso(self.next_eligible_donation_date),
            "totalPintsDonated": self.total_pints_donated,
            "lastPintsDonated": self.last_pints_donated,
        }


class OneTimePassword(models.Model):
    """Short-lived email code. One live row per (email, purpose)."""
    PURPOSES = [
        ("DONOR_REGISTRATION", "Donor registration"),
        ("DONOR_LOGIN", "Donor login"),
        ("ORGANIZER", "Organizer verification"),
        ("ADMIN_LOGIN", "Admin login"),
    ]

    email = models.EmailField(db_index=True)
    purpose = models.CharField(max_length=20, choices=PURPOSES)
    code = models.CharField(max_length=6)
    attempts = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()

    class Meta:
        indexes = [models.Index(fields=["email", "purpose"], name="otp_email_purpose_idx")]

    def __str__(self):
        return f"{self.purpose} OTP for {self.email}"

    @property
    def is_expired(self):
        return timezone.now() >= self.expires_at


class RevokedToken(models.Model):
    jti = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField(db_index=True)
    revoked_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.jti
