import os
import re
import uuid

from django import forms

from .models import OrganizerDocument

ALLOWED_DOCUMENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
MAX_DOCUMENT_SIZE = 5 * 1024 * 1024
MAX_DOCUMENTS_PER_UPLOAD = 5


class OrganizerRegistrationForm(forms.Form):
    firstName = forms.CharField(max_length=150)
    lastName = forms.CharField(max_length=150)
    email = forms.EmailField()
    password = forms.CharField(min_length=6)
    phone = forms.CharField(max_length=20)
    organization = forms.CharField(max_length=200)
    street = forms.CharField(max_length=200, required=False)
    city = forms.CharField(max_length=100, required=False)
    state = forms.CharField(max_length=100, required=False)

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()


class OrganizerProfileForm(forms.Form):
    FIELD_MAP = {
        "firstName": ("user", "first_name"),
        "lastName": ("user", "last_name"),
        "phone": ("user", "phone_number"),
        "organization": ("profile", "organization"),
        "street": ("profile", "street"),
        "city": ("profile", "city"),
        "state": ("profile", "state"),
    }

    firstName = forms.CharField(max_length=150, required=False)
    lastName = forms.CharField(max_length=150, required=False)
    phone = forms.CharField(max_length=20, required=False)
    organization = forms.CharField(max_length=200, required=False)
    street = forms.CharField(max_length=200, required=False)
    city = forms.CharField(max_length=100, required=False)
    state = forms.CharField(max_length=100, required=False)

    def apply(self, user, profile):
        targets = {"user": user, "profile": profile}
        for key, (target, attr) in self.FIELD_MAP.items():
            if key in self.data:
                setattr(targets[target], attr, self.cleaned_data[key])


class EligibilityForm(forms.Form):
    eligibleToOrganize = forms.BooleanField(required=False)


def safe_filename(name):
    base, ext = os.path.splitext(os.path.basename(name or "document"))
    base = re.sub(r"[^a-zA-Z0-9]", "_", base)[:80] or "document"
    return f"{base}-{uuid.uuid4().hex}{ext.lower()}"


class DocumentUploadForm(forms.Form):
    documentType = forms.ChoiceField(choices=OrganizerDocument.DOCUMENT_TYPES)

    def __init__(self, data=None, files=None, **kwargs):
        super().__init__(data, files, **kwargs)
        self.uploads = files.getlist("documents") if files is not None else []

    def clean(self):
        cleaned = super().clean()
        if not self.uploads:
            raise forms.ValidationError("No documents uploaded")
        if len(self.uploads) > MAX_DOCUMENTS_PER_UPLOAD:
            raise forms.ValidationError(f"At most {MAX_DOCUMENTS_PER_UPLOAD} documents per upload")
        for f in self.uploads:
            if f.content_type not in ALLOWED_DOCUMENT_TYPES:
                raise forms.ValidationError(
                    "Invalid file type. Only PDF, JPEG, PNG, and Word documents are allowed."
                )
            if f.size > MAX_DOCUMENT_SIZE:
                raise forms.ValidationError(f"{f.name} is larger than 5MB")
        return cleaned
