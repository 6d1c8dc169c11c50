"""Medication stock models."""
import uuid

from django.conf import settings
from django.db import models


class ActiveMedicationManager(models.Manager):
    """Hide soft-deleted rows."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class Medication(models.Model):
    """One stocked medication."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    qty = models.PositiveIntegerField(default=0)
    unit = models.CharField(max_length=50, blank=True, default="")
    dosage = models.CharField(max_length=100, blank=True, default="")
    barcode = models.CharField(max_length=64, blank=True, default="", db_index=True)
    expires_at = models.DateField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name="+",
    )
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ActiveMedicationManager()
    all_objects = models.Manager()

    class Meta:
        app_label = "inventory"
        db_table = "medications"
        ordering = ["name"]
        base_manager_name = "all_objects"

    def __str__(self):
        return self.name

    @property
    def created_by_name(self):
        if self.created_by is None:
            return ""
        return self.created_by.get_full_name() or self.created_by.get_username()

    def snapshot(self):
        """Prior state as stored in the audit log."""
        return {
            "id": str(self.id),
            "name": self.name,
            "qty": self.qty,
            "unit": self.unit,
            "dosage": self.dosage,
            "barcode": self.barcode,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "created_by": str(self.created_by_id) if self.created_by_id else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }
