"""Attach the audit service to every request as ``request.audit``."""
from .services import AuditService


class AuditServiceMiddleware:
    """One AuditService per process, handed to views through the request."""

    def __init__(self, get_response):
        self.get_response = get_response
        self.audit = AuditService.from_settings()

    def __call__(self, request):
        request.audit = self.audit
        return self.get_response(request)
