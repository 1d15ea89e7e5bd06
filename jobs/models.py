from django.conf import settings
from django.db import models


class JobType(models.TextChoices):
    FULL_TIME = "full-time", "Full-time"
    PART_TIME = "part-time", "Part-time"
    CONTRACT = "contract", "Contract"
    INTERNSHIP = "internship", "Internship"


class Currency(models.TextChoices):
    USD = "USD", "USD"
    EUR = "EUR", "EUR"
    GBP = "GBP", "GBP"
    INR = "INR", "INR"


class JobStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    CLOSED = "closed", "Closed"


class JobQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=JobStatus.ACTIVE)

    def for_employer(self, user):
        return self.filter(employer=user)

    def recent(self):
        return self.order_by("-created_at", "-id")


class Job(models.Model):
    # Set once at creation; JobForm never exposes it.
    employer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="jobs")
    title = models.CharField(max_length=255)
    company = models.CharField(max_length=255)
    location = models.CharField(max_length=255)
    job_type = models.CharField(max_length=20, choices=JobType.choices)
    description = models.TextField()
    requirements = models.JSONField(default=list)
    salary_min = models.FloatField(null=True, blank=True)
    salary_max = models.FloatField(null=True, blank=True)
    salary_currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.USD)
    status = models.CharField(max_length=10, choices=JobStatus.choices, default=JobStatus.ACTIVE)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = JobQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["status", "-created_at"], name="job_status_created_idx")]

    def __str__(self):
        return f"{self.title} @ {self.company}"

    def is_open(self) -> bool:
        return self.status == JobStatus.ACTIVE

    @property
    def application_ids(self) -> list[int]:
        # Derived from the applications table; there is no stored copy to drift.
        return [application.pk for application in self.applications.all()]
