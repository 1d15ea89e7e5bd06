"""Helpers shared by the app test suites."""

import json
import shutil
import tempfile
from pathlib import Path

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings

from accounts.models import User
from accounts.tokens import make_token


def make_user(email, role=User.Role.CANDIDATE, *, name="", company="", phone="", password="pass12345"):
    return User.objects.create_user(
        username=email,
        email=email,
        password=password,
        name=name or email.split("@")[0],
        role=role,
        company=company,
        phone=phone,
    )


def auth(user):
    return {"HTTP_AUTHORIZATION": f"Bearer {make_token(user)}"}


def job_payload(**overrides):
    payload = {
        "title": "Data Engineer",
        "company": "ACME",
        "location": "Remote",
        "type": "full-time",
        "description": "Build pipelines",
        "requirements": ["SQL"],
        "salary": {"min": 1000, "max": 2000, "currency": "USD"},
    }
    payload.update(overrides)
    return payload


def resume_file(name="cv.pdf", content=b"%PDF-1.4 resume"):
    return SimpleUploadedFile(name, content, content_type="application/pdf")


def as_json(data):
    return {"data": json.dumps(data), "content_type": "application/json"}


class TempMediaMixin:
    """Point MEDIA_ROOT at a fresh directory for each test."""

    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp(prefix="jobportal-test-")
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        media_override = override_settings(MEDIA_ROOT=self.media_root)
        media_override.enable()
        self.addCleanup(media_override.disable)

    def stored_resumes(self):
        folder = Path(self.media_root) / "resumes"
        if not folder.exists():
            return []
        return sorted(p.name for p in folder.iterdir())

    def resume_on_disk(self, path):
        # "/uploads/resumes/x.pdf" -> <media_root>/resumes/x.pdf
        return Path(self.media_root) / path[len("/uploads/"):]
