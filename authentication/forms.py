from django import forms
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError


class SignupForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(min_length=8, error_messages={'min_length': 'Password must be at least 8 characters long.'})
    display_name = forms.CharField(max_length=100)

    def clean_email(self):
        email = self.cleaned_data['email'].strip().lower()
        if User.objects.filter(username__iexact=email).exists():
            raise ValidationError("An account with this email already exists.")
        return email

    def clean_display_name(self):
        display_name = self.cleaned_data['display_name'].strip()
        if not display_name:
            raise ValidationError("Display name is required.")
        return display_name
