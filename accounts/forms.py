from django import forms
from django.contrib.auth import get_user_model, password_validation

User = get_user_model()


class RegistrationForm(forms.ModelForm):
    # Also stored as the username, which is capped at 150 characters.
    email = forms.EmailField(max_length=150)
    password = forms.CharField()
    role = forms.ChoiceField(
        choices=[(User.Role.CANDIDATE, "Candidate"), (User.Role.EMPLOYER, "Employer")],
        required=False,
    )

    class Meta:
        model = User
        fields = ["name", "email", "company", "phone"]

    def clean_name(self):
        name = (self.cleaned_data.get("name") or "").strip()
        if not name:
            raise forms.ValidationError("Name is required")
        return name

    def clean_email(self):
        email = self.cleaned_data["email"].strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("Email already registered")
        return email

    def clean_password(self):
        password = self.cleaned_data["password"]
        password_validation.validate_password(password)
        return password

    def save(self, commit=True):
        user = super().save(commit=False)
        user.username = user.email
        user.role = self.cleaned_data.get("role") or User.Role.CANDIDATE
        user.set_password(self.cleaned_data["password"])
        if commit:
            user.save()
        return user


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField()
