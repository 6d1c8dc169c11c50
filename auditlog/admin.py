from django.contrib import admin
from .models import AuditEntry


@admin.register(AuditEntry)
class AuditEntryAdmin(admin.ModelAdmin):
    list_display = ("occurred_at", "action", "affected_table", "record_id", "actor_name", "source_address")
    list_filter = ("action", "affected_table")
    search_fields = ("record_id", "actor_id", "actor_name")
    readonly_fields = (
        "id", "affected_table", "record_id", "action", "previous_data",
        "actor_id", "actor_name", "occurred_at", "source_address", "note",
    )

    # Append-only: entries are written by AuditService, never through the admin.
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
