from django.urls import path
from . import views

app_name = "dashboard"

urlpatterns = [
    path("meds/", views.medications_view, name="medications"),
    path("meds/export/", views.export_csv_view, name="export_csv"),
    path("meds/<uuid:medication_id>/", views.medication_detail_view, name="medication_detail"),
    path("meds/<uuid:medication_id>/restore/", views.medication_restore_view, name="medication_restore"),
    path("meds/<uuid:medication_id>/purge/", views.medication_purge_view, name="medication_purge"),
]
