from django import forms

from .models import DonorProfile


class DonorRegistrationForm(forms.Form):
    firstName = forms.CharField(max_length=150)
    lastName = forms.CharField(max_length=150)
    email = forms.EmailField()
    password = forms.CharField(min_length=6)
    phoneNumber = forms.CharField(max_length=20, required=False)
    bloodType = forms.ChoiceField(choices=DonorProfile.BLOOD_TYPES, required=False)
    street = forms.CharField(max_length=200, required=False)
    city = forms.CharField(max_length=100, required=False)
    state = forms.CharField(max_length=100, required=False)
    zipCode = forms.CharField(max_length=20, required=False)

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField()

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()


class OTPForm(forms.Form):
    email = forms.EmailField()
    otp = forms.RegexField(regex=r"^\d{6}$", error_messages={"invalid": "OTP must be 6 digits"})

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()


class EmailForm(forms.Form):
    email = forms.EmailField()

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()


class PasswordChangeForm(forms.Form):
    currentPassword = forms.CharField()
    newPassword = forms.CharField(min_length=6)


class DonorUpdateForm(forms.Form):
    """
    Partial update of a donor. Only keys present in the payload are applied;
    derived flags are not fields here so they can never be set from input.
    """
    USER_FIELDS = {
        "firstName": "first_name",
        "lastName": "last_name",
        "phoneNumber": "phone_number",
    }
    PROFILE_FIELDS = {
        "nicNo": "nic_no",
        "bloodType": "blood_type",
        "dateOfBirth": "date_of_birth",
        "street": "street",
        "city": "city",
        "state": "state",
        "zipCode": "zip_code",
        "lat": "latitude",
        "lng": "longitude",
        "weight": "weight",
        "healthConditions": "health_conditions",
        "drugUsage": "drug_usage",
        "donatedBefore": "donated_before",
        "additionalInfo": "additional_info",
    }

    firstName = forms.CharField(max_length=150, required=False)
    lastName = forms.CharField(max_length=150, required=False)
    phoneNumber = forms.CharField(max_length=20, required=False)

    nicNo = forms.CharField(max_length=20, required=False)
    bloodType = forms.ChoiceField(choices=DonorProfile.BLOOD_TYPES, required=False)
    dateOfBirth = forms.DateField(required=False)
    street = forms.CharField(max_length=200, required=False)
    city = forms.CharField(max_length=100, required=False)
    state = forms.CharField(max_length=100, required=False)
    zipCode = forms.CharField(max_length=20, required=False)
    lat = forms.FloatField(required=False, min_value=-90, max_value=90)
    lng = forms.FloatField(required=False, min_value=-180, max_value=180)

    weight = forms.FloatField(required=False, min_value=0)
    healthConditions = forms.JSONField(required=False)
    drugUsage = forms.BooleanField(required=False)
    donatedBefore = forms.ChoiceField(choices=DonorProfile.DONATED_BEFORE, required=False)
    additionalInfo = forms.CharField(required=False)

    def clean_healthConditions(self):
        value = self.cleaned_data.get("healthConditions")
        if value in (None, ""):
            return []
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise forms.ValidationError("Must be a list of strings")
        return value

    def apply(self, user, profile):
        """Copy provided values onto the user and profile. Returns nothing; caller saves."""
        provided = set(self.data.keys())
        for key, attr in self.USER_FIELDS.items():
            if key in provided:
                setattr(user, attr, self.cleaned_data[key] or "")
        for key, attr in self.PROFILE_FIELDS.items():
            if key not in provided:
                continue
            setattr(profile, attr, self.cleaned_data[key])
