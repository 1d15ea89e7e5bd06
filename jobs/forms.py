from django import forms

from .models import Currency, Job


class RequirementsField(forms.Field):
    """A non-empty list of non-empty strings, order preserved."""

    default_error_messages = {
        "required": "Job requirements are required",
        "invalid": "Requirements must be a list of strings",
        "blank_item": "Requirements cannot contain empty entries",
    }

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if not isinstance(value, (list, tuple)):
            raise forms.ValidationError(self.error_messages["invalid"], code="invalid")
        items = []
        for item in value:
            if not isinstance(item, str):
                raise forms.ValidationError(self.error_messages["invalid"], code="invalid")
            if not item.strip():
                raise forms.ValidationError(self.error_messages["blank_item"], code="blank_item")
            items.append(item.strip())
        return items


class JobForm(forms.ModelForm):
    requirements = RequirementsField()
    salary_currency = forms.ChoiceField(
        choices=Currency.choices,
        required=False,
        error_messages={"invalid_choice": "Currency must be one of: USD, EUR, GBP, INR"},
    )

    class Meta:
        model = Job
        fields = [
            "title",
            "company",
            "location",
            "job_type",
            "description",
            "requirements",
            "salary_min",
            "salary_max",
            "salary_currency",
        ]
        error_messages = {
            "title": {"required": "Job title is required"},
            "company": {"required": "Company name is required"},
            "location": {"required": "Job location is required"},
            "job_type": {
                "required": "Job type is required",
                "invalid_choice": "Job type must be one of: full-time, part-time, contract, internship",
            },
            "description": {"required": "Job description is required"},
            "salary_min": {"invalid": "Invalid minimum salary"},
            "salary_max": {"invalid": "Invalid maximum salary"},
        }

    def clean_salary_currency(self):
        return self.cleaned_data.get("salary_currency") or Currency.USD


class JobUpdateForm(JobForm):
    class Meta(JobForm.Meta):
        fields = JobForm.Meta.fields + ["status"]
        error_messages = {
            **JobForm.Meta.error_messages,
            "status": {"invalid_choice": "Status must be either active or closed"},
        }
