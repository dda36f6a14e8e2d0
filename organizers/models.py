from django.conf import settings
from django.db import models
from django.utils import timezone


class OrganizerProfile(models.Model):
    """
    Organization details of a camp organizer. ``eligible_to_organize`` is the
    admin-controlled gate for creating camps.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="organizer_profile")

    organization = models.CharField(max_length=200)
    street = models.CharField(max_length=200, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)

    eligible_to_organize = models.BooleanField(default=False)
    eligibility_updated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.organization} ({self.user.email})"

    def as_dict(self):
        return {
            "organization": self.organization,
            "address": {"street": self.street, "city": self.city, "state": self.state},
            "eligibleToOrganize": self.eligible_to_organize,
            "createdCamps": list(self.user.created_camps.values_list("id", flat=True)),
        }


def document_upload_to(instance, filename):
    return f"documents/{instance.organizer_id}/{filename}"


class OrganizerDocument(models.Model):
    DOCUMENT_TYPES = [
        ("license", "License"),
        ("registration", "Registration"),
        ("permit", "Permit"),
        ("compliance", "Compliance"),
        ("other", "Other"),
    ]

    organizer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="organizer_documents")
    document_type = models.CharField(max_length=20, choices=DOCUMENT_TYPES, db_index=True)

    file = models.FileField(upload_to=document_upload_to)
    original_name = models.CharField(max_length=255)
    content_type = models.CharField(max_length=100)
    size = models.PositiveIntegerField()

    verified = models.BooleanField(default=False, db_index=True)
    uploaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-uploaded_at", "-id"]

    def __str__(self):
        return f"{self.document_type}: {self.original_name}"

    def as_dict(self):
        return {
            "id": self.pk,
            "organizerId": self.organizer_id,
            "documentType": self.document_type,
            "originalName": self.original_name,
            "fileType": self.content_type,
            "fileSize": self.size,
            "uploadDate": self.uploaded_at.isoformat(),
            "verified": self.verified,
        }
