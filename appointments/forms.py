from django import forms

from camps.forms import parse_date_value


class AppointmentDateField(forms.CharField):
    def to_python(self, value):
        value = super().to_python(value)
        if not value:
            return None
        try:
            return parse_date_value(value)
        except ValueError:
            raise forms.ValidationError("Enter a valid date (YYYY-MM-DD)")


class AppointmentForm(forms.Form):
    campId = forms.IntegerField()
    date = AppointmentDateField()
    time = forms.CharField(max_length=20)


class AppointmentUpdateForm(forms.Form):
    campId = forms.IntegerField(required=False)
    date = AppointmentDateField(required=False)
    time = forms.CharField(max_length=20, required=False)

    def clean(self):
        cleaned = super().clean()
        if not any(cleaned.get(k) for k in ("campId", "date", "time")):
            raise forms.ValidationError("Nothing to update")
        return cleaned
