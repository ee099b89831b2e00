from django.contrib import admin

from .models import Company


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    """Company directory is managed here; the API only reads it."""

    list_display = ['name', 'owner', 'email', 'stripe_connect_id', 'stripe_onboarded', 'created_at']
    list_filter = ['stripe_onboarded']
    search_fields = ['name', 'email', 'owner__username', 'stripe_connect_id']
    readonly_fields = ['id', 'created_at', 'updated_at']
