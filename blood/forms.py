from django import forms

from camps.forms import parse_date_value
from .models import DonationRecord


class DonationRecordForm(forms.Form):
    donationDate = forms.CharField()
    donationType = forms.ChoiceField(choices=DonationRecord.DONATION_TYPES, required=False)
    campId = forms.IntegerField(required=False)
    donationCenter = forms.CharField(max_length=200, required=False)
    pintsDonated = forms.IntegerField(min_value=1, max_value=4, required=False)
    notes = forms.CharField(required=False)
    postDonationIssues = forms.CharField(required=False)

    def clean_donationDate(self):
        try:
            value = parse_date_value(self.cleaned_data["donationDate"])
        except ValueError:
            raise forms.ValidationError("Enter a valid date (YYYY-MM-DD)")
        return value
