from django.conf import settings
from django.db import models

from core.errors import LimitExceeded


def max_active_appointments():
    return int(getattr(settings, "LIFEFLOW_MAX_ACTIVE_APPOINTMENTS", 3))


class Appointment(models.Model):
    STATUS = [
        ("Pending", "Pending"),
        ("Confirmed", "Confirmed"),
        ("Cancelled", "Cancelled"),
    ]
    ACTIVE_STATUSES = ("Pending", "Confirmed")

    donor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="appointments")
    camp = models.ForeignKey("camps.Camp", on_delete=models.CASCADE, related_name="appointments")

    date = models.DateField()
    time = models.CharField(max_length=20)
    status = models.CharField(max_length=10, choices=STATUS, default="Pending", db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["donor", "camp"],
                condition=models.Q(status__in=["Pending", "Confirmed"]),
                name="uniq_active_appointment_per_camp",
            ),
        ]
        indexes = [models.Index(fields=["donor", "status"], name="appt_donor_status_idx")]

    def __str__(self):
        return f"{self.donor} @ {self.camp} on {self.date} {self.time} [{self.status}]"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def save(self, *args, **kwargs):
        # Last line of defence for the active-appointment cap on inserts
        if self._state.adding and self.is_active:
            limit = max_active_appointments()
            active = Appointment.objects.filter(donor_id=self.donor_id, status__in=self.ACTIVE_STATUSES).count()
            if active >= limit:
                raise LimitExceeded(f"User cannot have more than {limit} active appointments")
        super().save(*args, **kwargs)

    def as_dict(self, with_camp=True, with_donor=False):
        data = {
            "id": self.pk,
            "userId": self.donor_id,
            "campId": self.camp_id,
            "date": self.date.isoformat(),
            "time": self.time,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_camp:
            data["camp"] = self.camp.as_dict()
        if with_donor:
            data["user"] = self.donor.as_dict()
        return data
