from django.conf import settings
from django.db import models
from django.utils import timezone


class Camp(models.Model):
    STATUS = [
        ("Upcoming", "Upcoming"),
        ("Open", "Open"),
        ("Full", "Full"),
        ("Closed", "Closed"),
    ]
    BOOKABLE_STATUSES = ("Open", "Upcoming")

    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_camps",
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    operating_hours = models.CharField(max_length=100)

    latitude = models.FloatField()
    longitude = models.FloatField()

    street = models.CharField(max_length=200)
    city = models.CharField(max_length=100, db_index=True)
    postal_code = models.CharField(max_length=20)

    status = models.CharField(max_length=10, choices=STATUS, default="Upcoming", db_index=True)

    contact_phone = models.CharField(max_length=20)
    contact_email = models.EmailField()

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["latitude", "longitude"], name="camp_lat_lng_idx")]

    def __str__(self):
        return f"{self.name} ({self.city})"

    def save(self, *args, **kwargs):
        self.city = (self.city or "").strip()
        super().save(*args, **kwargs)

    @property
    def available_dates(self):
        return [d.date for d in self.dates.all()]

    def future_dates(self, today=None):
        today = today or timezone.localdate()
        return [d for d in self.available_dates if d >= today]

    def as_dict(self):
        return {
            "id": self.pk,
            "name": self.name,
            "description": self.description,
            "operatingHours": self.operating_hours,
            "location": {"lat": self.latitude, "lng": self.longitude},
            "address": {
                "street": self.street,
                "city": self.city,
                "postalCode": self.postal_code,
            },
            "status": self.status,
            "availableDates": [d.isoformat() for d in self.available_dates],
            "contact": {"phone": self.contact_phone, "email": self.contact_email},
            "organizer": self.organizer_id,
            "createdAt": self.created_at.isoformat(),
        }


class CampDate(models.Model):
    camp = models.ForeignKey(Camp, on_delete=models.CASCADE, related_name="dates")
    date = models.DateField(db_index=True)

    class Meta:
        ordering = ["date"]
        constraints = [
            models.UniqueConstraint(fields=["camp", "date"], name="uniq_camp_date"),
        ]

    def __str__(self):
        return f"{self.camp.name} on {self.date}"
