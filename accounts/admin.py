from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser, DonorProfile, OneTimePassword, RevokedToken


class DonorProfileInline(admin.StackedInline):
    model = DonorProfile
    can_delete = False
    verbose_name_plural = "Donor Profile"
    readonly_fields = DonorProfile.DERIVED_FIELDS


class CustomUserAdmin(UserAdmin):
    inlines = (DonorProfileInline,)

    list_display = ("email", "first_name", "last_name", "role", "is_verified", "is_staff")
    list_filter = ("role", "is_verified", "is_staff")
    search_fields = ("email", "first_name", "last_name", "phone_number")

    fieldsets = UserAdmin.fieldsets + (
        ("LifeFlow", {"fields": ("role", "is_verified", "phone_number")}),
    )


admin.site.register(CustomUser, CustomUserAdmin)


@admin.register(OneTimePassword)
class OneTimePasswordAdmin(admin.ModelAdmin):
    list_display = ("email", "purpose", "attempts", "created_at", "expires_at")
    list_filter = ("purpose",)
    search_fields = ("email",)


@admin.register(RevokedToken)
class RevokedTokenAdmin(admin.ModelAdmin):
    list_display = ("jti", "revoked_at", "expires_at")
