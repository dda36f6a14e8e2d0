import logging

from django.contrib.auth import get_user_model

from core.errors import Forbidden, NotFound, TooManyRequests, Unauthorized, ValidationFailed
from .otp import issue_otp

logger = logging.getLogger(__name__)


def check_credentials(email, password, role):
    """The active user with this email, password and role, or the matching error."""
    User = get_user_model()
    user = User.objects.filter(email=email).first()
    if user is None:
        raise NotFound("We couldn't find an account with that email. Please check your email or sign up.")
    if not user.is_active or not user.check_password(password):
        raise Unauthorized("Invalid credentials")
    if user.role != role:
        raise Forbidden("This account cannot sign in here")
    return user


def resend_login_otp(email, purpose):
    """Send a fresh code for an unverified login; a code still inside its cooldown stays valid."""
    try:
        issue_otp(email, purpose)
    except TooManyRequests:
        logger.info("%s OTP for %s still cooling down, reusing the live code", purpose, email)


def change_password(user, current_password, new_password):
    if not user.check_password(current_password):
        raise ValidationFailed("Current password is incorrect")
    if current_password == new_password:
        raise ValidationFailed("New password must be different from the current password")
    user.set_password(new_password)
    user.save(update_fields=["password"])
