"""Access control decorators."""
from functools import wraps
from django.http import JsonResponse


def staff_required(view_func):
    """Restrict view to staff users only."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_staff:
            return JsonResponse({"error": "Access denied. Staff privileges required."}, status=403)
        return view_func(request, *args, **kwargs)
    return _wrapped
