from django.contrib import admin

from .models import Approval, StaffProfile


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "staff_role", "nic", "city", "created_at")
    list_filter = ("staff_role",)
    search_fields = ("user__email", "nic")


@admin.register(Approval)
class ApprovalAdmin(admin.ModelAdmin):
    list_display = ("staff", "target_type", "target_id", "approved_at")
    list_filter = ("target_type",)
