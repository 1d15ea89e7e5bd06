import os
import runpy
from pathlib import Path
from unittest import mock

from django.core.exceptions import ImproperlyConfigured
from django.core import signing
from django.test import TestCase, override_settings
from django.urls import reverse

from jobportal.testing import as_json, auth, make_user
from .models import User
from .tokens import make_token, read_token


class RegistrationTests(TestCase):
    def test_register_candidate_returns_token(self):
        resp = self.client.post(
            reverse("auth_register"),
            **as_json({"name": "Cara", "email": "Cara@Example.com", "password": "secret123"}),
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["user"]["email"], "cara@example.com")
        self.assertEqual(body["user"]["role"], User.Role.CANDIDATE)

        user = User.objects.get(email="cara@example.com")
        self.assertEqual(read_token(body["token"]), user.pk)
        self.assertTrue(user.check_password("secret123"))

    def test_register_employer_keeps_company(self):
        resp = self.client.post(
            reverse("auth_register"),
            **as_json(
                {
                    "name": "Erin",
                    "email": "erin@example.com",
                    "password": "secret123",
                    "role": "employer",
                    "company": "ACME",
                }
            ),
        )
        self.assertEqual(resp.status_code, 201)
        user = User.objects.get(email="erin@example.com")
        self.assertTrue(user.is_employer)
        self.assertEqual(user.company, "ACME")

    def test_register_duplicate_email_rejected(self):
        make_user("dup@example.com")
        resp = self.client.post(
            reverse("auth_register"),
            **as_json({"name": "Dup", "email": "DUP@example.com", "password": "secret123"}),
        )
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertEqual(body["kind"], "validation_error")
        self.assertIn("email", [e["field"] for e in body["errors"]])

    def test_register_cannot_self_assign_admin(self):
        resp = self.client.post(
            reverse("auth_register"),
            **as_json({"name": "Root", "email": "root@example.com", "password": "secret123", "role": "admin"}),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(User.objects.filter(email="root@example.com").exists())

    def test_register_short_password_rejected(self):
        resp = self.client.post(
            reverse("auth_register"),
            **as_json({"name": "Shorty", "email": "short@example.com", "password": "abc"}),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("password", [e["field"] for e in resp.json()["errors"]])

    def test_register_email_longer_than_username_rejected(self):
        email = f"{'a' * 140}@example.com"
        self.assertEqual(len(email), 152)
        resp = self.client.post(
            reverse("auth_register"),
            **as_json({"name": "Long", "email": email, "password": "secret123"}),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("email", [e["field"] for e in resp.json()["errors"]])
        self.assertFalse(User.objects.filter(email=email).exists())

    def test_register_rejects_malformed_json(self):
        resp = self.client.post(reverse("auth_register"), data="{not json", content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["kind"], "validation_error")


class LoginTests(TestCase):
    def setUp(self):
        self.user = make_user("lena@example.com", password="secret123")

    def test_login_success(self):
        resp = self.client.post(
            reverse("auth_login"), **as_json({"email": "LENA@example.com", "password": "secret123"})
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(read_token(resp.json()["token"]), self.user.pk)

    def test_login_wrong_password(self):
        resp = self.client.post(reverse("auth_login"), **as_json({"email": "lena@example.com", "password": "nope"}))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Invalid email or password.")


class TokenAuthTests(TestCase):
    def setUp(self):
        self.user = make_user("tom@example.com", role=User.Role.EMPLOYER, company="ACME")

    def test_me_with_bearer_token(self):
        resp = self.client.get(reverse("auth_me"), **auth(self.user))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["id"], self.user.pk)

    def test_me_with_legacy_header(self):
        resp = self.client.get(reverse("auth_me"), HTTP_X_AUTH_TOKEN=make_token(self.user))
        self.assertEqual(resp.status_code, 200)

    def test_me_without_token(self):
        resp = self.client.get(reverse("auth_me"))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["kind"], "unauthenticated")

    def test_tampered_token_rejected(self):
        resp = self.client.get(reverse("auth_me"), HTTP_AUTHORIZATION=f"Bearer {make_token(self.user)}x")
        self.assertEqual(resp.status_code, 401)

    @override_settings(AUTH_TOKEN_MAX_AGE=-1)
    def test_expired_token_rejected(self):
        resp = self.client.get(reverse("auth_me"), **auth(self.user))
        self.assertEqual(resp.status_code, 401)
        self.assertIn("expired", resp.json()["message"])

    def test_token_for_inactive_user_rejected(self):
        headers = auth(self.user)
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])
        resp = self.client.get(reverse("auth_me"), **headers)
        self.assertEqual(resp.status_code, 401)

    def test_token_signed_with_other_salt_rejected(self):
        token = signing.dumps({"user_id": self.user.pk}, salt="something-else")
        resp = self.client.get(reverse("auth_me"), HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(resp.status_code, 401)


class SettingsTests(TestCase):
    def test_secret_key_is_required(self):
        settings_file = Path(__file__).resolve().parent.parent / "jobportal" / "settings.py"
        env = {k: v for k, v in os.environ.items() if k != "JOBPORTAL_SECRET_KEY"}
        with mock.patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ImproperlyConfigured):
                runpy.run_path(str(settings_file))
