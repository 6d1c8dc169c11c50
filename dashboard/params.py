"""Query-string parsing shared by the API views."""
import json
from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


def parse_int(value, default, minimum=1, maximum=None):
    """Integer from a query value; below ``minimum`` or unparseable gives ``default``."""
    try:
        v = int(value)
    except (TypeError, ValueError):
        return default
    if v < minimum:
        return default
    if maximum:
        v = min(v, maximum)
    return v


def parse_timestamp(value, end_of_day=False):
    """
    Parse an ISO datetime or a bare date. A bare date covers the whole day:
    its start, or its last instant when ``end_of_day`` is set.
    Returns None for an empty value, raises ValueError when unparseable.
    """
    if not value:
        return None
    # parse_datetime also accepts a bare date (as midnight), so try dates first
    day = parse_date(value)
    if day is not None:
        parsed = datetime.combine(day, time.max if end_of_day else time.min)
    else:
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValueError(f"Invalid date or datetime: {value!r}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def request_payload(request):
    """Return the JSON or form body as a dict, or None when it is not an object."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            return None
        return data if isinstance(data, dict) else None
    return request.POST.dict()
