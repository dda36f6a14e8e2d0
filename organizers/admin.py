from django.contrib import admin

from .models import OrganizerDocument, OrganizerProfile


@admin.register(OrganizerProfile)
class OrganizerProfileAdmin(admin.ModelAdmin):
    list_display = ("organization", "user", "city", "eligible_to_organize", "created_at")
    list_filter = ("eligible_to_organize",)
    search_fields = ("organization", "user__email")


@admin.register(OrganizerDocument)
class OrganizerDocumentAdmin(admin.ModelAdmin):
    list_display = ("original_name", "organizer", "document_type", "verified", "uploaded_at")
    list_filter = ("document_type", "verified")
