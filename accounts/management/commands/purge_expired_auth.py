from django.core.management.base import BaseCommand
from django.utils import timezone

from accounts.models import OneTimePassword, RevokedToken


class Command(BaseCommand):
    help = "Delete expired one-time passwords and token revocations that can no longer matter."

    def handle(self, *args, **options):
        now = timezone.now()
        otp_count, _ = OneTimePassword.objects.filter(expires_at__lt=now).delete()
        revoked_count, _ = RevokedToken.objects.filter(expires_at__lt=now).delete()
        self.stdout.write(f"Purged OTPs: {otp_count}, revoked tokens: {revoked_count}")
