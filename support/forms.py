from django import forms


class ContactMessageForm(forms.Form):
    name = forms.CharField(max_length=150)
    email = forms.EmailField()
    subject = forms.CharField(max_length=200)
    message = forms.CharField(max_length=5000)

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()


class FAQForm(forms.Form):
    question = forms.CharField(max_length=500)
    answer = forms.CharField()
    category = forms.CharField(max_length=100, required=False)

    def clean_category(self):
        return (self.cleaned_data.get("category") or "").strip() or "General"


class FAQFeedbackForm(forms.Form):
    helpful = forms.NullBooleanField()
    comment = forms.CharField(max_length=2000, required=False)

    def clean_helpful(self):
        if self.cleaned_data.get("helpful") is None:
            raise forms.ValidationError("Please say whether the answer was helpful")
        return self.cleaned_data["helpful"]
