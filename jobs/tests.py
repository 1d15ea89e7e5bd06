from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse

from accounts.models import User
from applications import storage
from applications.models import Application
from applications.services import submit_application
from jobportal.testing import TempMediaMixin, as_json, auth, job_payload, make_user, resume_file

from .models import Job, JobStatus
from .services import MAX_ID, create_job, parse_id


class JobCreateTests(TestCase):
    def setUp(self):
        self.employer = make_user("emp@example.com", role=User.Role.EMPLOYER, company="ACME")
        self.candidate = make_user("cand@example.com")

    def test_employer_creates_active_job(self):
        resp = self.client.post(reverse("job_collection"), **as_json(job_payload()), **auth(self.employer))
        self.assertEqual(resp.status_code, 201)
        job = resp.json()["job"]
        self.assertEqual(job["status"], JobStatus.ACTIVE)
        self.assertEqual(job["employer"], self.employer.pk)
        self.assertEqual(job["applications"], [])
        self.assertEqual(job["salary"], {"min": 1000.0, "max": 2000.0, "currency": "USD"})
        self.assertEqual(job["version"], 1)

    def test_type_and_currency_are_normalised(self):
        payload = job_payload(type="Full-Time", salary={"min": 10, "max": 20, "currency": "eur"})
        job = create_job(self.employer, payload)
        self.assertEqual(job.job_type, "full-time")
        self.assertEqual(job.salary_currency, "EUR")

    def test_currency_defaults_to_usd(self):
        job = create_job(self.employer, job_payload(salary={"min": 10, "max": 20}))
        self.assertEqual(job.salary_currency, "USD")

    def test_candidate_cannot_create(self):
        resp = self.client.post(reverse("job_collection"), **as_json(job_payload()), **auth(self.candidate))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["kind"], "forbidden")
        self.assertFalse(Job.objects.exists())

    def test_anonymous_cannot_create(self):
        resp = self.client.post(reverse("job_collection"), **as_json(job_payload()))
        self.assertEqual(resp.status_code, 401)

    def test_missing_fields_reported(self):
        resp = self.client.post(reverse("job_collection"), **as_json({}), **auth(self.employer))
        self.assertEqual(resp.status_code, 400)
        fields = {e["field"] for e in resp.json()["errors"]}
        self.assertTrue(
            {"title", "company", "location", "type", "description", "requirements", "salary"} <= fields
        )
        self.assertFalse(Job.objects.exists())

    def test_invalid_type_rejected(self):
        resp = self.client.post(
            reverse("job_collection"), **as_json(job_payload(type="freelance")), **auth(self.employer)
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("type", [e["field"] for e in resp.json()["errors"]])

    def test_invalid_currency_rejected(self):
        payload = job_payload(salary={"min": 1, "max": 2, "currency": "JPY"})
        resp = self.client.post(reverse("job_collection"), **as_json(payload), **auth(self.employer))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("salary.currency", [e["field"] for e in resp.json()["errors"]])

    def test_non_numeric_salary_rejected(self):
        payload = job_payload(salary={"min": "lots", "max": 2})
        resp = self.client.post(reverse("job_collection"), **as_json(payload), **auth(self.employer))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("salary.min", [e["field"] for e in resp.json()["errors"]])

    def test_blank_requirement_rejected(self):
        resp = self.client.post(
            reverse("job_collection"), **as_json(job_payload(requirements=["SQL", "  "])), **auth(self.employer)
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("requirements", [e["field"] for e in resp.json()["errors"]])

    def test_min_above_max_is_accepted(self):
        job = create_job(self.employer, job_payload(salary={"min": 5000, "max": 100, "currency": "GBP"}))
        self.assertEqual((job.salary_min, job.salary_max), (5000, 100))


class JobReadTests(TempMediaMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.employer = make_user("emp@example.com", role=User.Role.EMPLOYER, company="ACME")
        self.other_employer = make_user("other@example.com", role=User.Role.EMPLOYER)
        self.candidate = make_user("cand@example.com")

        self.first = create_job(self.employer, job_payload(title="First"))
        self.second = create_job(self.employer, job_payload(title="Second"))
        self.closed = create_job(self.other_employer, job_payload(title="Closed"))
        Job.objects.filter(pk=self.closed.pk).update(status=JobStatus.CLOSED)

    def test_list_only_active_newest_first(self):
        resp = self.client.get(reverse("job_collection"))
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual([j["title"] for j in body["jobs"]], ["Second", "First"])
        self.assertEqual(body["jobs"][0]["employer"]["email"], "emp@example.com")
        self.assertEqual(body["total"], 2)

    def test_list_paginates(self):
        resp = self.client.get(reverse("job_collection"), {"limit": 1, "page": 2})
        body = resp.json()
        self.assertEqual([j["title"] for j in body["jobs"]], ["First"])
        self.assertEqual((body["page"], body["pages"]), (2, 2))

    def test_list_ignores_garbage_paging(self):
        resp = self.client.get(reverse("job_collection"), {"limit": "many", "page": "x"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["page"], 1)

    def test_get_job_resolves_employer_and_applications(self):
        application = submit_application(self.candidate, self.first.pk, "Hello", resume_file())
        resp = self.client.get(reverse("job_detail", args=[self.first.pk]))
        self.assertEqual(resp.status_code, 200)
        job = resp.json()["job"]
        self.assertEqual(job["employer"]["id"], self.employer.pk)
        self.assertEqual([a["id"] for a in job["applications"]], [application.pk])

    def test_closed_job_is_still_readable_by_id(self):
        resp = self.client.get(reverse("job_detail", args=[self.closed.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["job"]["status"], JobStatus.CLOSED)

    def test_get_missing_job(self):
        resp = self.client.get(reverse("job_detail", args=[999999]))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"success": False, "kind": "not_found", "message": "Job not found"})

    def test_get_malformed_id_is_not_found(self):
        resp = self.client.get(reverse("job_detail", args=["not-an-id"]))
        self.assertEqual(resp.status_code, 404)

    def test_get_out_of_range_id_is_not_found(self):
        resp = self.client.get(reverse("job_detail", args=["99999999999999999999999"]))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["kind"], "not_found")

    def test_wrong_method_gets_json_envelope(self):
        resp = self.client.patch(reverse("job_collection"), **auth(self.employer))
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(resp.json()["kind"], "method_not_allowed")
        self.assertEqual(resp["Allow"], "GET, POST")

    def test_employer_listing_shows_own_jobs_including_closed(self):
        resp = self.client.get(reverse("employer_jobs"), **auth(self.other_employer))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([j["title"] for j in resp.json()["jobs"]], ["Closed"])

    def test_employer_listing_requires_employer(self):
        resp = self.client.get(reverse("employer_jobs"), **auth(self.candidate))
        self.assertEqual(resp.status_code, 403)


class JobUpdateTests(TestCase):
    def setUp(self):
        self.employer = make_user("emp@example.com", role=User.Role.EMPLOYER, company="ACME")
        self.intruder = make_user("intruder@example.com", role=User.Role.EMPLOYER)
        self.job = create_job(self.employer, job_payload())
        self.url = reverse("job_detail", args=[self.job.pk])

    def test_partial_update_keeps_other_fields(self):
        resp = self.client.put(self.url, **as_json({"title": "Senior Data Engineer"}), **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.job.refresh_from_db()
        self.assertEqual(self.job.title, "Senior Data Engineer")
        self.assertEqual(self.job.company, "ACME")
        self.assertEqual(self.job.requirements, ["SQL"])
        self.assertEqual(self.job.version, 2)

    def test_salary_update_merges_with_existing(self):
        self.client.put(self.url, **as_json({"salary": {"max": 3000}}), **auth(self.employer))
        self.job.refresh_from_db()
        self.assertEqual((self.job.salary_min, self.job.salary_max, self.job.salary_currency), (1000, 3000, "USD"))

    def test_close_job(self):
        resp = self.client.put(self.url, **as_json({"status": "closed"}), **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["job"]["status"], JobStatus.CLOSED)

    def test_employer_cannot_be_reassigned(self):
        self.client.put(self.url, **as_json({"employer": self.intruder.pk}), **auth(self.employer))
        self.job.refresh_from_db()
        self.assertEqual(self.job.employer_id, self.employer.pk)

    def test_non_owner_forbidden(self):
        resp = self.client.put(self.url, **as_json({"title": "Hijacked"}), **auth(self.intruder))
        self.assertEqual(resp.status_code, 403)
        self.job.refresh_from_db()
        self.assertEqual(self.job.title, "Data Engineer")

    def test_update_missing_job(self):
        resp = self.client.put(
            reverse("job_detail", args=[999999]), **as_json({"title": "x"}), **auth(self.employer)
        )
        self.assertEqual(resp.status_code, 404)

    def test_invalid_update_leaves_job_unchanged(self):
        resp = self.client.put(self.url, **as_json({"title": "", "status": "paused"}), **auth(self.employer))
        self.assertEqual(resp.status_code, 400)
        fields = {e["field"] for e in resp.json()["errors"]}
        self.assertEqual(fields, {"title", "status"})
        self.job.refresh_from_db()
        self.assertEqual(self.job.version, 1)

    def test_stale_version_conflicts(self):
        resp = self.client.put(
            self.url, **as_json({"title": "Late"}), HTTP_IF_MATCH='"7"', **auth(self.employer)
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["kind"], "conflict")

    def test_matching_version_applies(self):
        resp = self.client.put(self.url, **as_json({"title": "On time"}), HTTP_IF_MATCH="1", **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["job"]["version"], 2)


class JobDeleteTests(TempMediaMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.employer = make_user("emp@example.com", role=User.Role.EMPLOYER, company="ACME")
        self.candidate = make_user("cand@example.com")
        self.job = create_job(self.employer, job_payload())
        self.url = reverse("job_detail", args=[self.job.pk])

    def test_delete_removes_applications_and_resumes(self):
        application = submit_application(self.candidate, self.job.pk, "Hello", resume_file())
        self.assertTrue(self.resume_on_disk(application.resume).exists())

        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["applicationsRemoved"], 1)
        self.assertFalse(Job.objects.filter(pk=self.job.pk).exists())
        self.assertFalse(Application.objects.filter(pk=application.pk).exists())
        self.assertEqual(self.stored_resumes(), [])

        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 404)

    def test_non_owner_cannot_delete(self):
        other = make_user("other@example.com", role=User.Role.EMPLOYER)
        resp = self.client.delete(self.url, **auth(other))
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(Job.objects.filter(pk=self.job.pk).exists())

    @override_settings(JOBS_CASCADE_DELETE_APPLICATIONS=False)
    def test_delete_refused_when_cascade_disabled(self):
        application = submit_application(self.candidate, self.job.pk, "Hello", resume_file())
        resp = self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["kind"], "invalid_state")
        self.assertTrue(Application.objects.filter(pk=application.pk).exists())
        self.assertTrue(self.resume_on_disk(application.resume).exists())

    @override_settings(JOBS_CASCADE_DELETE_APPLICATIONS=False)
    def test_delete_without_applications_when_cascade_disabled(self):
        resp = self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Job.objects.filter(pk=self.job.pk).exists())

    def test_resumes_removed_only_after_commit(self):
        application = submit_application(self.candidate, self.job.pk, "Hello", resume_file())
        with self.captureOnCommitCallbacks() as callbacks:
            resp = self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(self.resume_on_disk(application.resume).exists())

        for callback in callbacks:
            callback()
        self.assertEqual(self.stored_resumes(), [])

    def test_file_error_after_commit_keeps_delete(self):
        second = make_user("second@example.com")
        submit_application(self.candidate, self.job.pk, "Hello", resume_file())
        submit_application(second, self.job.pk, "Hi", resume_file())

        calls = []

        def flaky_delete(path):
            calls.append(path)
            if len(calls) == 2:
                raise OSError("disk unavailable")
            return real_delete(path)

        real_delete = storage.delete_resume
        with mock.patch("applications.storage.delete_resume", side_effect=flaky_delete):
            with self.assertLogs("applications.storage", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    resp = self.client.delete(self.url, **auth(self.employer))

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["applicationsRemoved"], 2)
        self.assertFalse(Job.objects.filter(pk=self.job.pk).exists())
        self.assertFalse(Application.objects.exists())
        self.assertEqual(len(calls), 2)
        self.assertEqual(len(self.stored_resumes()), 1)


class SeedDemoDataTests(TempMediaMixin, TestCase):
    def test_seed_then_wipe(self):
        out = StringIO()
        call_command(
            "seed_demo_data",
            employers=1,
            candidates=2,
            jobs_per_employer=2,
            applications_per_candidate=1,
            stdout=out,
        )
        self.assertIn("Seeded demo data successfully.", out.getvalue())
        self.assertEqual(Job.objects.count(), 2)
        self.assertEqual(Job.objects.filter(status=JobStatus.CLOSED).count(), 1)
        self.assertEqual(Application.objects.count(), 2)
        self.assertEqual(len(self.stored_resumes()), 2)

        outsider = make_user("outsider@example.com")
        open_job = Job.objects.filter(status=JobStatus.ACTIVE).first()
        submit_application(outsider, open_job.pk, "Not seeded", resume_file())
        self.assertEqual(len(self.stored_resumes()), 3)

        with self.captureOnCommitCallbacks(execute=True):
            call_command(
                "seed_demo_data",
                employers=1,
                candidates=1,
                jobs_per_employer=1,
                applications_per_candidate=0,
                wipe=True,
                stdout=StringIO(),
            )
        self.assertEqual(Job.objects.count(), 1)
        self.assertFalse(Application.objects.exists())
        self.assertEqual(self.stored_resumes(), [])


class ParseIdTests(TestCase):
    def test_accepts_positive_ids_in_primary_key_range(self):
        self.assertEqual(parse_id(" 42 "), 42)
        self.assertEqual(parse_id(str(MAX_ID)), MAX_ID)

    def test_rejects_everything_else(self):
        for value in (None, "", "abc", "0", "-3", "1.5", str(MAX_ID + 1), "9" * 30):
            self.assertIsNone(parse_id(value), value)
