from django.forms import ModelForm
from django.core.exceptions import ValidationError

from .models import Profile


class ProfileUpdateForm(ModelForm):
    class Meta:
        model = Profile
        fields = ['display_name', 'bio', 'location']

    def clean_display_name(self):
        display_name = (self.cleaned_data.get('display_name') or '').strip()
        if not display_name:
            raise ValidationError("Display name cannot be empty.")
        return display_name
