from django.contrib import admin

from .models import FAQ, ContactMessage, FAQFeedback


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    list_display = ("subject", "email", "resolved", "created_at")
    list_filter = ("resolved",)
    search_fields = ("subject", "email", "name")


@admin.register(FAQ)
class FAQAdmin(admin.ModelAdmin):
    list_display = ("question", "category", "view_count", "helpful_count", "not_helpful_count")
    list_filter = ("category",)
    search_fields = ("question",)


admin.site.register(FAQFeedback)
