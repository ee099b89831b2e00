from django.contrib import admin

from .models import SplitRecord


@admin.register(SplitRecord)
class SplitRecordAdmin(admin.ModelAdmin):
    """
    Read-only admin for splits.

    Every state change must go through SplitService so the version
    check and aggregate rules apply; the admin only inspects records.
    """

    list_display = ['title', 'type', 'status', 'filled_slots', 'slots', 'cost_per_slot', 'organizer_id', 'created_at']
    list_filter = ['status', 'type']
    search_fields = ['title', 'location', 'organizer_id']
    readonly_fields = [f.name for f in SplitRecord._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
