"""
Medication stock operations.
Every mutation is written together with its audit entry in one transaction.
"""
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from auditlog.models import AuditEntry
from .models import Medication

AUDIT_TABLE = "medications"
SEARCH_FIELDS = ["name", "unit", "dosage", "barcode"]


def search_medications(queryset, q):
    """Case-insensitive substring match on name, unit, dosage or barcode."""
    q = (q or "").strip()
    if not q:
        return queryset
    condition = Q()
    for field in SEARCH_FIELDS:
        condition |= Q(**{f"{field}__icontains": q})
    return queryset.filter(condition)


def _persisted_snapshot(medication):
    return Medication.all_objects.select_for_update().get(pk=medication.pk).snapshot()


def create_medication(audit, form, user=None, **actor):
    with transaction.atomic():
        medication = form.save(commit=False)
        medication.created_by = user
        medication.save()
        audit.record(
            affected_table=AUDIT_TABLE, record_id=medication.pk,
            action=AuditEntry.Action.CREATE, **actor,
        )
    return medication


def update_medication(audit, form, **actor):
    """Save a validated MedicationForm bound to an existing instance."""
    with transaction.atomic():
        previous = _persisted_snapshot(form.instance)
        medication = form.save()
        audit.record(
            affected_table=AUDIT_TABLE, record_id=medication.pk,
            action=AuditEntry.Action.UPDATE, previous_data=previous, **actor,
        )
    return medication


def soft_delete_medication(audit, medication, note=None, **actor):
    with transaction.atomic():
        previous = _persisted_snapshot(medication)
        medication.deleted_at = timezone.now()
        medication.save(update_fields=["deleted_at", "updated_at"])
        audit.record(
            affected_table=AUDIT_TABLE, record_id=medication.pk,
            action=AuditEntry.Action.SOFT_DELETE, previous_data=previous, note=note, **actor,
        )
    return medication


def restore_medication(audit, medication, **actor):
    """Undo a soft delete. Returns False when the medication was not deleted."""
    if medication.deleted_at is None:
        return False
    with transaction.atomic():
        previous = _persisted_snapshot(medication)
        medication.deleted_at = None
        medication.save(update_fields=["deleted_at", "updated_at"])
        audit.record(
            affected_table=AUDIT_TABLE, record_id=medication.pk,
            action=AuditEntry.Action.RESTORE, previous_data=previous, **actor,
        )
    return True


def delete_medication(audit, medication, note=None, **actor):
    """Remove the row for good; the audit entry keeps its last state."""
    with transaction.atomic():
        previous = _persisted_snapshot(medication)
        record_id = medication.pk
        medication.delete()
        audit.record(
            affected_table=AUDIT_TABLE, record_id=record_id,
            action=AuditEntry.Action.DELETE, previous_data=previous, note=note, **actor,
        )
