from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class ApplicationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    REVIEWED = "reviewed", "Reviewed"
    SHORTLISTED = "shortlisted", "Shortlisted"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


def validate_resume_path(value):
    prefix = settings.RESUME_UPLOAD_PREFIX
    if not value.startswith(prefix):
        raise ValidationError(f"Resume path must start with {prefix}")


class ApplicationQuerySet(models.QuerySet):
    def for_job(self, job):
        return self.filter(job=job)

    def for_candidate(self, user):
        return self.filter(candidate=user)

    def recent(self):
        return self.order_by("-created_at", "-id")


class Application(models.Model):
    job = models.ForeignKey("jobs.Job", on_delete=models.CASCADE, related_name="applications")
    candidate = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="applications")
    status = models.CharField(max_length=20, choices=ApplicationStatus.choices, default=ApplicationStatus.PENDING)
    cover_letter = models.TextField()
    resume = models.CharField(max_length=255, validators=[validate_resume_path])
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ApplicationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["job", "candidate"], name="unique_application_per_candidate"),
        ]

    def __str__(self):
        return f"{self.candidate} → {self.job} ({self.status})"


class ApplicationEvent(models.Model):
    """Status timeline; also where employer notes from the full update land."""

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name="events")
    status = models.CharField(max_length=20, choices=ApplicationStatus.choices)
    note = models.TextField(blank=True)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="application_events",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"#{self.application_id} {self.status}"
