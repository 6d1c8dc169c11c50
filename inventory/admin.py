from django.contrib import admin

from auditlog.services import AuditService, actor_from_request
from . import services
from .forms import MedicationForm
from .models import Medication


def _audit(request):
    # Set by AuditServiceMiddleware on normal requests
    return getattr(request, "audit", None) or AuditService.from_settings()


@admin.register(Medication)
class MedicationAdmin(admin.ModelAdmin):
    """Admin edits go through inventory.services so each one is audited."""

    form = MedicationForm
    list_display = ("name", "qty", "unit", "dosage", "expires_at", "deleted_at")
    list_filter = ("unit",)
    search_fields = ("name", "barcode")
    readonly_fields = ("created_by", "created_at", "updated_at", "deleted_at")

    def get_queryset(self, request):
        return Medication.all_objects.all()

    def save_model(self, request, obj, form, change):
        actor = actor_from_request(request)
        if change:
            services.update_medication(_audit(request), form, **actor)
        else:
            services.create_medication(_audit(request), form, user=request.user, **actor)

    def delete_model(self, request, obj):
        services.delete_medication(_audit(request), obj, note="Deleted in admin",
                                   **actor_from_request(request))

    def delete_queryset(self, request, queryset):
        for obj in queryset:
            self.delete_model(request, obj)
