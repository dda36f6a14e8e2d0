from django.contrib import admin

from .models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("donor", "camp", "date", "time", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("donor__email", "camp__name")
    date_hierarchy = "date"
