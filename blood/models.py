from django.conf import settings
from django.db import models
from django.utils import timezone


class DonationRecord(models.Model):
    """
    One entry of a donor's donation history. Records are append-only; the
    donor profile recomputes its derived fields whenever one is added.
    """
    DONATION_TYPES = [
        ("Whole Blood", "Whole Blood"),
        ("Plasma", "Plasma"),
        ("Platelets", "Platelets"),
        ("Double Red Cells", "Double Red Cells"),
    ]

    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="donation_records"
    )
    donation_date = models.DateField()
    donation_type = models.CharField(max_length=20, choices=DONATION_TYPES, default="Whole Blood")
    camp = models.ForeignKey(
        "camps.Camp", on_delete=models.SET_NULL, null=True, blank=True, related_name="donation_records"
    )
    donation_center = models.CharField(max_length=200, blank=True)
    pints_donated = models.PositiveSmallIntegerField(default=1)
    notes = models.TextField(blank=True)
    post_donation_issues = models.TextField(blank=True)

    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="recorded_donations",
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.donor} - {self.donation_type} on {self.donation_date}"

    def as_dict(self):
        return {
            "id": self.pk,
            "donationDate": self.donation_date.isoformat(),
            "donationType": self.donation_type,
            "campId": self.camp_id,
            "donationCenter": self.donation_center or (self.camp.name if self.camp_id else ""),
            "pintsDonated": self.pints_donated,
            "notes": self.notes,
            "postDonationIssues": self.post_donation_issues,
            "recordedBy": self.recorded_by_id,
            "createdAt": self.created_at.isoformat(),
        }
