"""Audit log – one immutable row per logged mutation."""
import json
import uuid

from django.db import models


class AuditEntry(models.Model):
    """Immutable audit trail entry."""

    class Action(models.TextChoices):
        CREATE = "CREATE"
        UPDATE = "UPDATE"
        DELETE = "DELETE"
        SOFT_DELETE = "SOFT_DELETE"
        RESTORE = "RESTORE"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    affected_table = models.CharField(max_length=128, db_index=True)
    record_id = models.CharField(max_length=128)
    action = models.CharField(max_length=20, choices=Action.choices)
    previous_data = models.TextField(null=True, blank=True)
    actor_id = models.CharField(max_length=128, null=True, blank=True, db_index=True)
    actor_name = models.CharField(max_length=255, null=True, blank=True)
    occurred_at = models.DateTimeField(db_index=True)
    source_address = models.GenericIPAddressField(null=True, blank=True)
    note = models.TextField(null=True, blank=True)

    class Meta:
        app_label = "auditlog"
        db_table = "audit_log"
        ordering = ["-occurred_at"]
        indexes = [
            models.Index(fields=["affected_table", "occurred_at"], name="idx_audit_table_ts"),
        ]

    def __str__(self):
        return f"{self.occurred_at} [{self.action}] {self.affected_table}#{self.record_id}"

    @property
    def previous_state(self):
        """Decoded ``previous_data`` snapshot, or None."""
        if self.previous_data is None:
            return None
        return json.loads(self.previous_data)
