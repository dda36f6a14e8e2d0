from django import forms


class ChatTurnForm(forms.Form):
    message = forms.CharField(max_length=2000)

    def __init__(self, data=None, *args, **kwargs):
        super().__init__(data, *args, **kwargs)
        self.history = (data or {}).get("history") or []

    def clean(self):
        cleaned = super().clean()
        if not isinstance(self.history, list):
            raise forms.ValidationError("History must be a list of messages")
        return cleaned
