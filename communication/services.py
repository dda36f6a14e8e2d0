import logging

from django.db import transaction

from .emails import send_message_email
from .models import Notification, QueuedEmail

logger = logging.getLogger(__name__)


def _chunked(lst, size=1000):
    for i in range(0, len(lst), size):
        yield lst[i:i + size]


def notify_user(user, title, body="", category="SYSTEM", level="INFO", url="", email=None):
    """
    In-app notification plus an optional email. ``email`` is a dict of
    ``send_message_email`` keyword arguments (subject, heading, lines, details).
    """
    Notification.objects.create(
        user=user,
        category=category,
        title=title,
        body=body,
        url=url,
        level=level,
    )
    if email and user.email:
        send_message_email(user.email, name=user.first_name, user=user, url=url, **email)


def notify_user_safely(user, title, **kwargs):
    """``notify_user`` for side effects that must never fail the caller."""
    try:
        notify_user(user, title, **kwargs)
    except Exception:
        logger.exception("Notification '%s' for user %s failed", title, getattr(user, "pk", None))


def broadcast_inapp(users_qs, title, body="", url="", level="INFO", category="SYSTEM"):
    user_ids = list(users_qs.values_list("id", flat=True))
    if not user_ids:
        return 0

    cat = (category or "SYSTEM").upper()
    total = 0
    for batch in _chunked(user_ids, 1000):
        rows = [
            Notification(user_id=uid, category=cat, title=title, body=body, url=url, level=level)
            for uid in batch
        ]
        Notification.objects.bulk_create(rows)
        total += len(rows)
    return total


def queue_email_broadcast(users_qs, subject, body):
    users_qs = users_qs.exclude(email__isnull=True).exclude(email__exact="")
    rows = list(users_qs.values_list("id", "email"))
    if not rows:
        return 0

    total = 0
    for batch in _chunked(rows, 1000):
        email_rows = [QueuedEmail(user_id=uid, to_email=email, subject=subject, body=body) for uid, email in batch]
        QueuedEmail.objects.bulk_create(email_rows)
        total += len(email_rows)
    return total


def broadcast_after_commit(
    users_qs,
    title,
    body="",
    url="",
    level="INFO",
    email_subject=None,
    email_body=None,
    category="SYSTEM",
):
    """Fan out in-app notifications (and queued emails) once the surrounding transaction commits."""
    def _run():
        try:
            count = broadcast_inapp(users_qs, title=title, body=body, url=url, level=level, category=category)
            if email_subject and email_body:
                queue_email_broadcast(users_qs, subject=email_subject, body=email_body)
        except Exception:
            logger.exception("Broadcast '%s' failed", title)
            return
        logger.info("Broadcast '%s' reached %s users", title, count)

    transaction.on_commit(_run)
