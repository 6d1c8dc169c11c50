from django.urls import path
from . import admin_views

app_name = "admin_panel"

urlpatterns = [
    # Audit log
    path("audit/", admin_views.audit_log_view, name="audit_log"),
    path("audit/<str:table>/<str:record_id>/", admin_views.record_history_view, name="record_history"),
]
