from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from accounts.models import DonorProfile
from communication.models import Notification, QueuedEmail


class Command(BaseCommand):
    help = "Remind donors whose waiting period ends today (or N days from now). In-app + queued email."

    def handle(self, *args, **options):
        now = timezone.localtime(timezone.now())
        today = now.date()

        days_before = int(getattr(settings, "LIFEFLOW_ELIGIBILITY_REMIND_DAYS_BEFORE", 0))  # 0 = same day
        repeat_days = int(getattr(settings, "LIFEFLOW_ELIGIBILITY_REMIND_REPEAT_DAYS", 7))
        recent_cutoff = now - timedelta(days=repeat_days)
        site_url = getattr(settings, "LIFEFLOW_SITE_URL", "")

        target_date = today + timedelta(days=days_before)

        profiles = (
            DonorProfile.objects
            .filter(user__is_active=True, user__role="DONOR", next_eligible_donation_date=target_date)
            .select_related("user")
        )

        title = "You can donate blood again"
        sent = 0

        for profile in profiles:
            user = profile.user
            body = f"You are eligible to donate again from {target_date:%B %d, %Y}."
            url = "/camps"

            # anti-spam
            if Notification.objects.filter(
                user=user,
                category="DONATION",
                title=title,
                created_at__gte=recent_cutoff,
            ).exists():
                continue

            Notification.objects.create(
                user=user,
                category="DONATION",
                title=title,
                body=body,
                url=url,
                level="SUCCESS",
            )
            if user.email:
                QueuedEmail.objects.create(
                    user=user,
                    to_email=user.email,
                    subject="LifeFlow - You are eligible to donate again",
                    body=f"{body}\n\nFind a camp near you: {site_url}{url}",
                )
            sent += 1

        self.stdout.write(self.style.SUCCESS(f"Eligibility reminders sent: {sent}"))
