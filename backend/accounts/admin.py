from django.contrib import admin

from .models import Organization


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "base_currency", "is_active", "created_at")
    search_fields = ("name", "slug")
    list_filter = ("is_active", "base_currency")
    filter_horizontal = ("members",)
