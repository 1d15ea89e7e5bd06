from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        CANDIDATE = "candidate", "Candidate"
        EMPLOYER = "employer", "Employer"
        ADMIN = "admin", "Admin"

    name = models.CharField(max_length=150)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CANDIDATE)
    company = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True)

    def __str__(self):
        return f"{self.name or self.username} ({self.role})"

    @property
    def is_employer(self) -> bool:
        return self.role == self.Role.EMPLOYER

    @property
    def is_candidate(self) -> bool:
        return self.role == self.Role.CANDIDATE

    def public_identity(self) -> dict:
        return {"id": self.pk, "name": self.name, "email": self.email, "company": self.company}

    def as_dict(self) -> dict:
        return {**self.public_identity(), "role": self.role, "phone": self.phone}
