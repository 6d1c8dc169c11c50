"""Medication stock API – list, search, mutations and CSV export."""
import csv
import logging
from datetime import date

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from auditlog.services import actor_from_request
from inventory import services
from inventory.expiry import classify_expiry, expiry_counts
from inventory.forms import MedicationForm
from inventory.models import Medication
from .decorators import staff_required
from .params import request_payload

logger = logging.getLogger(__name__)


def _medication_json(med, today):
    return {
        "id": str(med.id),
        "name": med.name,
        "qty": med.qty,
        "unit": med.unit,
        "dosage": med.dosage,
        "barcode": med.barcode,
        "expires_at": med.expires_at.isoformat() if med.expires_at else None,
        "status": classify_expiry(med.expires_at, today=today).value,
        "created_at": med.created_at.isoformat() if med.created_at else None,
        "created_by_name": med.created_by_name,
        "deleted_at": med.deleted_at.isoformat() if med.deleted_at else None,
    }


def _bad_payload():
    return JsonResponse({"error": "Request body must be a JSON object or form data."}, status=400)


def _user(request):
    return request.user if request.user.is_authenticated else None


# ---------------------------------------------------------------------------
# List / create
# ---------------------------------------------------------------------------
@login_required
@require_http_methods(["GET", "POST"])
def medications_view(request):
    """GET: stock list with search and expiry counts. POST: create."""
    if request.method == "POST":
        return _create_medication(request)

    today = date.today()
    search = request.GET.get("search", "")
    medications = Medication.objects.select_related("created_by")

    all_items = list(medications)
    shown = list(services.search_medications(medications, search))

    return JsonResponse({
        "items": [_medication_json(m, today) for m in shown],
        "total": len(all_items),
        "shown": len(shown),
        **expiry_counts(all_items, today=today),
    })


def _create_medication(request):
    payload = request_payload(request)
    if payload is None:
        return _bad_payload()
    form = MedicationForm(payload)
    if not form.is_valid():
        return JsonResponse({"errors": form.errors}, status=400)
    med = services.create_medication(
        request.audit, form, user=_user(request), **actor_from_request(request),
    )
    return JsonResponse(_medication_json(med, date.today()), status=201)


# ---------------------------------------------------------------------------
# Detail / update / soft delete
# ---------------------------------------------------------------------------
@login_required
@require_http_methods(["GET", "POST", "DELETE"])
def medication_detail_view(request, medication_id):
    med = get_object_or_404(Medication, pk=medication_id)

    if request.method == "GET":
        return JsonResponse(_medication_json(med, date.today()))

    payload = request_payload(request)
    if payload is None:
        return _bad_payload()

    if request.method == "DELETE":
        services.soft_delete_medication(
            request.audit, med, note=payload.get("note"), **actor_from_request(request),
        )
        return JsonResponse({"deleted": str(med.id)})

    # Unsent fields keep their current value
    data = {field: getattr(med, field) for field in MedicationForm.Meta.fields}
    data.update(payload)
    form = MedicationForm(data, instance=med)
    if not form.is_valid():
        return JsonResponse({"errors": form.errors}, status=400)
    med = services.update_medication(request.audit, form, **actor_from_request(request))
    return JsonResponse(_medication_json(med, date.today()))


@login_required
@require_POST
def medication_restore_view(request, medication_id):
    med = get_object_or_404(Medication.all_objects, pk=medication_id)
    if not services.restore_medication(request.audit, med, **actor_from_request(request)):
        return JsonResponse({"error": "Medication is not deleted."}, status=409)
    return JsonResponse(_medication_json(med, date.today()))


@login_required
@staff_required
@require_POST
def medication_purge_view(request, medication_id):
    med = get_object_or_404(Medication.all_objects, pk=medication_id)
    payload = request_payload(request) or {}
    record_id = str(med.id)
    services.delete_medication(
        request.audit, med, note=payload.get("note"), **actor_from_request(request),
    )
    return JsonResponse({"purged": record_id})


# ---------------------------------------------------------------------------
# CSV Export
# ---------------------------------------------------------------------------
CSV_COLUMNS = [
    "name", "qty", "unit", "dosage", "expires_at", "status", "barcode",
    "created_at", "created_by_name",
]


@login_required
@require_GET
def export_csv_view(request):
    """Export the (optionally searched) stock list as CSV."""
    today = date.today()
    search = request.GET.get("search", "")
    medications = services.search_medications(
        Medication.objects.select_related("created_by"), search,
    )

    max_rows = settings.CSV_EXPORT_MAX_ROWS
    total = medications.count()
    if total > max_rows:
        logger.info("CSV export denied for %s: %s rows matched", request.user, total)
        return HttpResponse(
            f"Export exceeds the {max_rows:,} row limit ({total:,} rows matched). "
            f"Please narrow your search.",
            status=400,
            content_type="text/plain",
        )

    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = f'attachment; filename="medication_stock_{today.isoformat()}.csv"'

    writer = csv.writer(response)
    writer.writerow(CSV_COLUMNS)
    for med in medications:
        writer.writerow([
            med.name,
            med.qty,
            med.unit or "-",
            med.dosage or "-",
            med.expires_at.isoformat() if med.expires_at else "-",
            classify_expiry(med.expires_at, today=today).label,
            med.barcode or "-",
            med.created_at.date().isoformat() if med.created_at else "-",
            med.created_by_name or "-",
        ])

    logger.info("CSV export of %s rows by %s", total, request.user)
    return response
