from django.conf import settings
from django.db import models
from django.utils import timezone


class ContactMessage(models.Model):
    name = models.CharField(max_length=150)
    email = models.EmailField()
    subject = models.CharField(max_length=200)
    message = models.TextField()

    resolved = models.BooleanField(default=False, db_index=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="resolved_messages"
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.subject} from {self.email}"

    def as_dict(self):
        return {
            "id": self.pk,
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "message": self.message,
            "resolved": self.resolved,
            "resolvedAt": self.resolved_at.isoformat() if self.resolved_at else None,
            "createdAt": self.created_at.isoformat(),
        }


class FAQ(models.Model):
    question = models.CharField(max_length=500)
    answer = models.TextField()
    category = models.CharField(max_length=100, default="General", db_index=True)

    helpful_count = models.PositiveIntegerField(default=0)
    not_helpful_count = models.PositiveIntegerField(default=0)
    view_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.question

    @property
    def helpful_ratio(self):
        total = self.helpful_count + self.not_helpful_count
        return self.helpful_count / total if total else 0

    def as_dict(self):
        return {
            "id": self.pk,
            "question": self.question,
            "answer": self.answer,
            "category": self.category,
            "helpfulCount": self.helpful_count,
            "notHelpfulCount": self.not_helpful_count,
            "viewCount": self.view_count,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class FAQFeedback(models.Model):
    faq = models.ForeignKey(FAQ, on_delete=models.CASCADE, related_name="feedback")
    helpful = models.BooleanField()
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]

    def as_dict(self):
        return {
            "id": self.pk,
            "faq": {"id": self.faq_id, "question": self.faq.question},
            "helpful": self.helpful,
            "comment": self.comment,
            "createdAt": self.created_at.isoformat(),
        }
