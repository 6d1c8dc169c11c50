"""Medication create/edit form."""
from django import forms

from .models import Medication


class MedicationForm(forms.ModelForm):
    class Meta:
        model = Medication
        fields = ["name", "qty", "unit", "dosage", "barcode", "expires_at"]

    def clean_name(self):
        name = self.cleaned_data["name"].strip()
        if not name:
            raise forms.ValidationError("Name is required.")
        return name

    def clean_barcode(self):
        return self.cleaned_data.get("barcode", "").strip()
