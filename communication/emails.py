import logging

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from .models import QueuedEmail

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = "communication/emails/message"
OTP_TEMPLATE = "communication/emails/otp"


def render_pair(template, context):
    return (
        render_to_string(f"{template}.txt", context),
        render_to_string(f"{template}.html", context),
    )


def send_message_email(to_email, subject, heading, lines=(), details=(), url="", name="", user=None) -> bool:
    """
    Send a transactional email. A failed send never raises: it is logged and
    parked in ``QueuedEmail`` so ``send_queued_emails`` can retry it.
    """
    context = {
        "name": name,
        "heading": heading,
        "lines": list(lines),
        "details": list(details),
        "url": url,
    }
    text, html = render_pair(MESSAGE_TEMPLATE, context)
    try:
        send_mail(
            subject,
            text,
            settings.DEFAULT_FROM_EMAIL,
            [to_email],
            html_message=html,
            fail_silently=False,
        )
        return True
    except Exception as exc:
        logger.exception("Email '%s' to %s failed, queued for retry", subject, to_email)
        QueuedEmail.objects.create(
            user=user,
            to_email=to_email,
            subject=subject,
            body=text,
            html_body=html,
            attempts=1,
            last_error=str(exc)[:2000],
        )
        return False


def send_otp_email(to_email, code, minutes, intro="Use the code below to verify your email address."):
    # failures propagate to the caller
    text, html = render_pair(OTP_TEMPLATE, {"code": code, "minutes": minutes, "intro": intro})
    send_mail(
        "Your LifeFlow verification code",
        text,
        settings.DEFAULT_FROM_EMAIL,
        [to_email],
        html_message=html,
        fail_silently=False,
    )
