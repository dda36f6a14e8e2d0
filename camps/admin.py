from django.contrib import admin

from .models import Camp, CampDate


class CampDateInline(admin.TabularInline):
    model = CampDate
    extra = 0


@admin.register(Camp)
class CampAdmin(admin.ModelAdmin):
    list_display = ("name", "city", "status", "organizer", "created_at")
    list_filter = ("status", "city")
    search_fields = ("name", "city", "street", "organizer__email")
    inlines = (CampDateInline,)
