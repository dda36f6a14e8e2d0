"""
Email one-time passwords.

One live code per (email, purpose). Issuing is rate limited by a cooldown,
verification is limited to a fixed number of wrong guesses, and a code is
deleted as soon as it is used, exhausted or found expired.
"""
import logging
import math
import secrets
from datetime import timedelta

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from communication.emails import send_otp_email
from core.errors import TooManyRequests, ValidationFailed
from .models import OneTimePassword

logger = logging.getLogger(__name__)

DEFAULT_LIFETIMES = {
    "DONOR_REGISTRATION": 15 * 60,
    "DONOR_LOGIN": 5 * 60,
    "ORGANIZER": 15 * 60,
    "ADMIN_LOGIN": 5 * 60,
}


def lifetime_seconds(purpose) -> int:
    lifetimes = getattr(settings, "LIFEFLOW_OTP_LIFETIMES", DEFAULT_LIFETIMES)
    return int(lifetimes.get(purpose, DEFAULT_LIFETIMES.get(purpose, 5 * 60)))


def generate_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def cooldown_remaining(email, purpose) -> int:
    cooldown = int(getattr(settings, "LIFEFLOW_OTP_COOLDOWN_SECONDS", 60))
    latest = (
        OneTimePassword.objects
        .filter(email=email, purpose=purpose)
        .order_by("-created_at")
        .first()
    )
    if latest is None:
        return 0
    elapsed = (timezone.now() - latest.created_at).total_seconds()
    return max(0, math.ceil(cooldown - elapsed))


def issue_otp(email, purpose, intro=None):
    email = email.strip().lower()
    wait = cooldown_remaining(email, purpose)
    if wait > 0:
        raise TooManyRequests(
            f"Please wait {wait} seconds before requesting a new code",
            retryAfter=wait,
        )

    OneTimePassword.objects.filter(email=email, purpose=purpose).delete()

    now = timezone.now()
    seconds = lifetime_seconds(purpose)
    otp = OneTimePassword.objects.create(
        email=email,
        purpose=purpose,
        code=generate_code(),
        created_at=now,
        expires_at=now + timedelta(seconds=seconds),
    )

    kwargs = {"intro": intro} if intro else {}
    send_otp_email(email, otp.code, max(1, seconds // 60), **kwargs)
    logger.info("Issued %s OTP for %s", purpose, email)
    return otp


def verify_otp(email, purpose, code):
    email = (email or "").strip().lower()
    code = (code or "").strip()

    otp = (
        OneTimePassword.objects
        .filter(email=email, purpose=purpose)
        .order_by("-created_at")
        .first()
    )
    if otp is None:
        raise ValidationFailed("Verification code not found or expired. Please request a new one")

    max_attempts = int(getattr(settings, "LIFEFLOW_OTP_MAX_ATTEMPTS", 3))
    if otp.attempts >= max_attempts:
        otp.delete()
        logger.warning("OTP locked out for %s (%s)", email, purpose)
        raise TooManyRequests("Too many failed attempts. Please request a new code", attempts=otp.attempts)

    if not secrets.compare_digest(otp.code, code):
        OneTimePassword.objects.filter(pk=otp.pk).update(attempts=F("attempts") + 1)
        remaining = max(0, max_attempts - otp.attempts - 1)
        raise ValidationFailed("Invalid verification code", attemptsRemaining=remaining)

    if otp.is_expired:
        otp.delete()
        raise ValidationFailed("Verification code has expired. Please request a new one")

    otp.delete()
    return True
