from django.conf import settings
from django.db import models
from django.utils import timezone


class StaffProfile(models.Model):
    """Back-office details of a user with role ADMIN."""
    STAFF_ROLES = [
        ("superadmin", "Super admin"),
        ("moderator", "Moderator"),
        ("support", "Support"),
    ]

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="staff_profile")
    staff_role = models.CharField(max_length=12, choices=STAFF_ROLES, default="moderator", db_index=True)
    nic = models.CharField(max_length=20, unique=True)

    street = models.CharField(max_length=200, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.user.email} ({self.staff_role})"

    def as_dict(self):
        user = self.user
        return {
            "id": user.pk,
            "fullName": user.full_name,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "email": user.email,
            "role": self.staff_role,
            "nic": self.nic,
            "address": {"street": self.street, "city": self.city, "state": self.state},
            "createdAt": self.created_at.isoformat(),
        }


class Approval(models.Model):
    """Which staff member approved which donor, organizer or camp."""
    TARGETS = [
        ("USER", "Donor"),
        ("ORGANIZER", "Organizer"),
        ("CAMP", "Camp"),
    ]

    staff = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="approvals_given")
    target_type = models.CharField(max_length=10, choices=TARGETS)
    target_id = models.PositiveBigIntegerField()
    approved_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-approved_at"]
        constraints = [
            models.UniqueConstraint(fields=["staff", "target_type", "target_id"], name="uniq_staff_approval"),
        ]

    def __str__(self):
        return f"{self.staff.email} approved {self.target_type} #{self.target_id}"

    def as_dict(self):
        return {
            "targetType": self.target_type,
            "targetId": self.target_id,
            "approvedAt": self.approved_at.isoformat(),
        }
