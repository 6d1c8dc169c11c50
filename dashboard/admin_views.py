"""Staff views – audit log browsing."""
from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from auditlog.models import AuditEntry
from .decorators import staff_required
from .params import parse_int, parse_timestamp


def _entry_json(entry):
    return {
        "id": str(entry.id),
        "affected_table": entry.affected_table,
        "record_id": entry.record_id,
        "action": entry.action,
        "previous_data": entry.previous_state,
        "actor_id": entry.actor_id,
        "actor_name": entry.actor_name,
        "occurred_at": entry.occurred_at.isoformat() if entry.occurred_at else None,
        "source_address": entry.source_address,
        "note": entry.note,
    }


def _audit_filters(params):
    """Translate query-string parameters into AuditService filters."""
    action = params.get("action", "") or None
    if action and action not in AuditEntry.Action.values:
        raise ValueError(f"Unknown action {action!r}")
    return {
        "affected_table": params.get("table", "") or None,
        "actor_id": params.get("actor_id", "") or None,
        "action": action,
        "occurred_from": parse_timestamp(params.get("from", "")),
        "occurred_to": parse_timestamp(params.get("to", ""), end_of_day=True),
        "limit": parse_int(params.get("limit"), settings.AUDIT_DEFAULT_LIMIT,
                           maximum=settings.AUDIT_MAX_LIMIT),
    }


# ---------------------------------------------------------------------------
# Audit Log
# ---------------------------------------------------------------------------
@login_required
@staff_required
@require_GET
def audit_log_view(request):
    try:
        filters = _audit_filters(request.GET)
    except ValueError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    entries = request.audit.list_entries(**filters)
    return JsonResponse({"entries": [_entry_json(e) for e in entries]})


@login_required
@staff_required
@require_GET
def record_history_view(request, table, record_id):
    entries = request.audit.list_for_record(table, record_id)
    return JsonResponse({"entries": [_entry_json(e) for e in entries]})
