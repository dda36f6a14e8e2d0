from django import forms

from .models import StaffProfile


class StaffRegistrationForm(forms.Form):
    fullName = forms.CharField(max_length=300, required=False)
    firstName = forms.CharField(max_length=150, required=False)
    lastName = forms.CharField(max_length=150, required=False)
    email = forms.EmailField()
    password = forms.CharField(min_length=6)
    role = forms.ChoiceField(choices=StaffProfile.STAFF_ROLES, required=False)
    nic = forms.CharField(max_length=20)
    street = forms.CharField(max_length=200, required=False)
    city = forms.CharField(max_length=100, required=False)
    state = forms.CharField(max_length=100, required=False)

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()

    def clean(self):
        cleaned = super().clean()
        first = cleaned.get("firstName") or ""
        last = cleaned.get("lastName") or ""
        full = (cleaned.get("fullName") or "").strip()
        if not first and full:
            first, _, rest = full.partition(" ")
            last = last or rest.strip()
        if not first:
            raise forms.ValidationError("A name is required")
        cleaned["firstName"], cleaned["lastName"] = first, last
        return cleaned


class StaffUpdateForm(forms.Form):
    """Partial update of a staff member; blank values leave the field alone."""
    USER_FIELDS = {"firstName": "first_name", "lastName": "last_name", "email": "email"}
    PROFILE_FIELDS = {"street": "street", "city": "city", "state": "state", "nic": "nic"}

    fullName = forms.CharField(max_length=300, required=False)
    firstName = forms.CharField(max_length=150, required=False)
    lastName = forms.CharField(max_length=150, required=False)
    email = forms.EmailField(required=False)
    nic = forms.CharField(max_length=20, required=False)
    street = forms.CharField(max_length=200, required=False)
    city = forms.CharField(max_length=100, required=False)
    state = forms.CharField(max_length=100, required=False)

    def __init__(self, data=None, *args, allow=None, **kwargs):
        super().__init__(data, *args, **kwargs)
        self.allow = set(allow or (list(self.USER_FIELDS) + list(self.PROFILE_FIELDS)))

    def apply(self, user, profile):
        cd = self.cleaned_data
        if cd.get("fullName") and not cd.get("firstName"):
            first, _, rest = cd["fullName"].strip().partition(" ")
            cd["firstName"], cd["lastName"] = first, cd.get("lastName") or rest.strip()
        for key, attr in self.USER_FIELDS.items():
            if key in self.allow and cd.get(key):
                value = cd[key].strip().lower() if key == "email" else cd[key]
                setattr(user, attr, value)
        if "email" in self.allow and cd.get("email"):
            user.username = user.email
        for key, attr in self.PROFILE_FIELDS.items():
            if key in self.allow and cd.get(key):
                setattr(profile, attr, cd[key])
