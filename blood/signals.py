from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import DonationRecord


def _refresh_donor_profile(record):
    profile = getattr(record.donor, "donor_profile", None)
    if profile is not None:
        # save() recomputes eligibility and the next eligible date
        profile.save()


@receiver(post_save, sender=DonationRecord)
def donation_record_saved(sender, instance, created, **kwargs):
    _refresh_donor_profile(instance)


@receiver(post_delete, sender=DonationRecord)
def donation_record_deleted(sender, instance, **kwargs):
    _refresh_donor_profile(instance)
