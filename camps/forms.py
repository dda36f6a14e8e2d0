from datetime import date

from django import forms

from .models import Camp


def parse_date_value(value):
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        raise ValueError("empty date")
    # accepts "2025-06-01" and full ISO timestamps
    return date.fromisoformat(text[:10])


class CampForm(forms.Form):
    """
    Request schema for creating or updating a camp. ``address`` / ``contact``
    objects are flattened by the caller; ``partial`` makes every field optional.
    """
    FIELD_MAP = {
        "name": "name",
        "description": "description",
        "operatingHours": "operating_hours",
        "lat": "latitude",
        "lng": "longitude",
        "street": "street",
        "city": "city",
        "postalCode": "postal_code",
        "status": "status",
        "phone": "contact_phone",
        "email": "contact_email",
    }

    name = forms.CharField(max_length=200)
    description = forms.CharField(required=False)
    operatingHours = forms.CharField(max_length=100)
    lat = forms.FloatField(min_value=-90, max_value=90)
    lng = forms.FloatField(min_value=-180, max_value=180)
    street = forms.CharField(max_length=200)
    city = forms.CharField(max_length=100)
    postalCode = forms.CharField(max_length=20)
    status = forms.ChoiceField(choices=Camp.STATUS, required=False)
    phone = forms.CharField(max_length=20)
    email = forms.EmailField()
    availableDates = forms.JSONField()

    def __init__(self, data=None, partial=False, **kwargs):
        super().__init__(data, **kwargs)
        self.partial = partial
        if partial:
            for field in self.fields.values():
                field.required = False

    def clean_availableDates(self):
        value = self.cleaned_data.get("availableDates")
        if value in (None, "", []):
            if self.partial:
                return None
            raise forms.ValidationError("At least one available date is required")
        if not isinstance(value, list):
            raise forms.ValidationError("Must be a list of dates")
        try:
            dates = {parse_date_value(v) for v in value}
        except (TypeError, ValueError):
            raise forms.ValidationError("Dates must be in YYYY-MM-DD format")
        return sorted(dates)

    def apply(self, camp):
        for key, attr in self.FIELD_MAP.items():
            value = self.cleaned_data.get(key)
            # partial updates keep the stored value for empty input
            if value in (None, "") and (self.partial or key == "status"):
                continue
            setattr(camp, attr, value)
        return camp
