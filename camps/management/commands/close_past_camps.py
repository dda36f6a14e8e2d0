from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.db.models import Max
from django.utils import timezone

from communication.services import broadcast_after_commit
from camps.models import Camp


class Command(BaseCommand):
    help = "Close camps whose available dates are all in the past and tell their booked donors."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true")

    def handle(self, *args, **options):
        # Prevent overlapping executions
        lock_key = "lifeflow:close_past_camps:lock"
        if not cache.add(lock_key, 1, timeout=55):
            self.stdout.write("Another close_past_camps run is active. Exiting.")
            return

        try:
            today = timezone.localdate()
            qs = (
                Camp.objects
                .exclude(status="Closed")
                .annotate(last_date=Max("dates__date"))
                .filter(last_date__lt=today)
            )

            User = get_user_model()
            closed = 0
            for camp in qs:
                if options["dry_run"]:
                    self.stdout.write(f"Would close camp #{camp.pk} {camp.name} (last date {camp.last_date})")
                    continue

                camp.status = "Closed"
                camp.save(update_fields=["status"])
                closed += 1

                donors = User.objects.filter(appointments__camp=camp).distinct()
                title = "Blood Donation Camp Closed"
                body = f"'{camp.name}' in {camp.city} has finished. Thank you for your support."
                broadcast_after_commit(
                    donors,
                    title=title,
                    body=body,
                    url="/camps",
                    level="INFO",
                    category="CAMP",
                )

            self.stdout.write(self.style.SUCCESS(f"Camps closed: {closed}"))
        finally:
            cache.delete(lock_key)
