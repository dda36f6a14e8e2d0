from django.contrib import admin

from .models import DonationRecord


@admin.register(DonationRecord)
class DonationRecordAdmin(admin.ModelAdmin):
    list_display = ("donor", "donation_date", "donation_type", "camp", "pints_donated", "recorded_by")
    list_filter = ("donation_type",)
    search_fields = ("donor__email", "donation_center", "camp__name")
    date_hierarchy = "donation_date"
