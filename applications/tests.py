from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from accounts.models import User
from jobportal.exceptions import Conflict
from jobportal.testing import TempMediaMixin, as_json, auth, job_payload, make_user, resume_file
from jobs.models import Job, JobStatus
from jobs.services import create_job

from .models import Application, ApplicationEvent, ApplicationStatus
from .services import submit_application
from .storage import delete_resume


class ApplicationTestCase(TempMediaMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.employer = make_user("emp@example.com", role=User.Role.EMPLOYER, company="ACME")
        self.other_employer = make_user("emp2@example.com", role=User.Role.EMPLOYER, company="Globex")
        self.candidate = make_user("cand@example.com", name="Cand", phone="555-0100")
        self.job = create_job(self.employer, job_payload())

    def submit(self, user=None, **fields):
        data = {"job": self.job.pk, "coverLetter": "Hire me", "resume": resume_file()}
        data.update(fields)
        data = {k: v for k, v in data.items() if v is not None}
        return self.client.post(reverse("application_collection"), data, **auth(user or self.candidate))


class SubmitApplicationTests(ApplicationTestCase):
    def test_submit_creates_pending_application(self):
        resp = self.submit()
        self.assertEqual(resp.status_code, 201)
        body = resp.json()["application"]
        self.assertEqual(body["status"], ApplicationStatus.PENDING)
        self.assertEqual(body["job"], self.job.pk)
        self.assertEqual(body["candidate"], self.candidate.pk)
        self.assertTrue(body["resume"].startswith("/uploads/resumes/"))
        self.assertTrue(body["resume"].endswith("-cv.pdf"))
        self.assertTrue(self.resume_on_disk(body["resume"]).exists())

        self.job.refresh_from_db()
        self.assertEqual(self.job.application_ids, [body["id"]])
        event = ApplicationEvent.objects.get(application_id=body["id"])
        self.assertEqual((event.status, event.actor_id), (ApplicationStatus.PENDING, self.candidate.pk))

    def test_snake_case_cover_letter_accepted(self):
        resp = self.submit(coverLetter=None, cover_letter="Hello there")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["application"]["coverLetter"], "Hello there")

    def test_duplicate_application_conflicts_without_new_file(self):
        self.assertEqual(self.submit().status_code, 201)
        resp = self.submit()
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["message"], "You have already applied for this job")
        self.assertEqual(Application.objects.filter(job=self.job).count(), 1)
        self.assertEqual(len(self.stored_resumes()), 1)

    def test_closed_job_rejects_and_stores_nothing(self):
        Job.objects.filter(pk=self.job.pk).update(status=JobStatus.CLOSED)
        resp = self.submit()
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["kind"], "invalid_state")
        self.assertFalse(Application.objects.exists())
        self.assertEqual(self.stored_resumes(), [])

    def test_unknown_job_not_found_and_stores_nothing(self):
        resp = self.submit(job=999999)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "Job not found")
        self.assertEqual(self.stored_resumes(), [])

    def test_missing_fields_reported(self):
        resp = self.submit(job="", coverLetter="   ", resume=None)
        self.assertEqual(resp.status_code, 400)
        fields = [e["field"] for e in resp.json()["errors"]]
        self.assertEqual(fields, ["job", "coverLetter", "resume"])

    def test_missing_cover_letter_discards_upload(self):
        resp = self.submit(coverLetter="")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.stored_resumes(), [])

    def test_wrong_extension_rejected(self):
        resp = self.submit(resume=resume_file("cv.exe"))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["errors"][0]["field"], "resume")
        self.assertEqual(self.stored_resumes(), [])

    def test_word_documents_accepted(self):
        resp = self.submit(resume=resume_file("CV Final.DOCX", b"PK\x03\x04"))
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(resp.json()["application"]["resume"].endswith(".docx"))

    def test_oversized_resume_rejected(self):
        resp = self.submit(resume=resume_file("big.pdf", b"x" * (5 * 1024 * 1024 + 1)))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "File size too large. Maximum size is 5MB")
        self.assertEqual(self.stored_resumes(), [])

    def test_employer_cannot_apply(self):
        resp = self.submit(user=self.employer)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self.stored_resumes(), [])

    def test_storage_failure_is_unhandled_error(self):
        with mock.patch("applications.storage.store_resume", side_effect=OSError("disk full")):
            resp = self.submit()
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["kind"], "unhandled_error")
        self.assertFalse(Application.objects.exists())

    def test_lost_race_becomes_conflict_and_removes_file(self):
        submit_application(self.candidate, self.job.pk, "First", resume_file())
        # Both requests passed the duplicate check; the unique constraint decides.
        with mock.patch("applications.models.ApplicationQuerySet.exists", return_value=False):
            with self.assertRaises(Conflict):
                submit_application(self.candidate, self.job.pk, "Second", resume_file())
        self.assertEqual(Application.objects.count(), 1)
        self.assertEqual(len(self.stored_resumes()), 1)

    def test_failure_after_store_removes_file(self):
        with mock.patch("applications.services.record_application_event", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                submit_application(self.candidate, self.job.pk, "Hello", resume_file())
        self.assertFalse(Application.objects.exists())
        self.assertEqual(self.stored_resumes(), [])

    def test_storage_backend_error_is_unhandled_error(self):
        class BucketGone(Exception):
            pass

        with mock.patch("applications.storage.default_storage") as backend:
            backend.save.side_effect = BucketGone("bucket gone")
            with self.assertLogs("jobportal.api", level="ERROR"):
                resp = self.submit()
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "kind": "unhandled_error", "message": "Server error"})
        self.assertFalse(Application.objects.exists())

    def test_out_of_range_job_id_is_not_found(self):
        resp = self.submit(job="99999999999999999999999")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["kind"], "not_found")
        self.assertEqual(self.stored_resumes(), [])


class ListApplicationTests(ApplicationTestCase):
    def setUp(self):
        super().setUp()
        self.second_job = create_job(self.employer, job_payload(title="Analyst"))
        self.first = submit_application(self.candidate, self.job.pk, "One", resume_file())
        self.second = submit_application(self.candidate, self.second_job.pk, "Two", resume_file())

    def test_candidate_sees_own_applications_newest_first(self):
        make_user("someone@example.com")
        resp = self.client.get(reverse("application_collection"), **auth(self.candidate))
        self.assertEqual(resp.status_code, 200)
        apps = resp.json()["applications"]
        self.assertEqual([a["id"] for a in apps], [self.second.pk, self.first.pk])
        self.assertEqual(apps[0]["job"]["title"], "Analyst")

    def test_employer_cannot_use_candidate_listing(self):
        resp = self.client.get(reverse("application_collection"), **auth(self.employer))
        self.assertEqual(resp.status_code, 403)

    def test_owner_lists_job_applications_on_both_routes(self):
        other = make_user("other@example.com", name="Other")
        third = submit_application(other, self.job.pk, "Three", resume_file())
        for name in ("job_applications", "applications_for_job"):
            resp = self.client.get(reverse(name, args=[self.job.pk]), **auth(self.employer))
            self.assertEqual(resp.status_code, 200)
            apps = resp.json()["applications"]
            self.assertEqual([a["id"] for a in apps], [third.pk, self.first.pk])
            self.assertEqual(apps[1]["candidate"]["phone"], "555-0100")
            self.assertEqual(apps[1]["history"][0]["status"], ApplicationStatus.PENDING)

    def test_non_owner_cannot_list_job_applications(self):
        resp = self.client.get(reverse("job_applications", args=[self.job.pk]), **auth(self.other_employer))
        self.assertEqual(resp.status_code, 403)

    def test_listing_for_missing_job(self):
        resp = self.client.get(reverse("applications_for_job", args=[999999]), **auth(self.employer))
        self.assertEqual(resp.status_code, 404)


class UpdateStatusTests(ApplicationTestCase):
    def setUp(self):
        super().setUp()
        self.application = submit_application(self.candidate, self.job.pk, "Hello", resume_file())
        self.url = reverse("application_detail", args=[self.application.pk])

    def test_owner_shortlists(self):
        earlier = timezone.now() - timedelta(days=1)
        Application.objects.filter(pk=self.application.pk).update(updated_at=earlier)

        resp = self.client.patch(self.url, **as_json({"status": "shortlisted"}), **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.SHORTLISTED)
        self.assertGreater(self.application.updated_at, earlier)
        self.assertEqual(self.application.version, 2)

    def test_any_status_can_follow_any_other(self):
        for status in ("accepted", "pending", "rejected", "reviewed"):
            resp = self.client.patch(self.url, **as_json({"status": status}), **auth(self.employer))
            self.assertEqual(resp.status_code, 200)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.REVIEWED)

    def test_other_employer_forbidden(self):
        resp = self.client.patch(self.url, **as_json({"status": "shortlisted"}), **auth(self.other_employer))
        self.assertEqual(resp.status_code, 403)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.PENDING)

    def test_applicant_cannot_change_status(self):
        resp = self.client.patch(self.url, **as_json({"status": "accepted"}), **auth(self.candidate))
        self.assertEqual(resp.status_code, 403)

    def test_invalid_status_leaves_application_unchanged(self):
        resp = self.client.patch(self.url, **as_json({"status": "hired"}), **auth(self.employer))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Invalid status provided")
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.PENDING)
        self.assertEqual(self.application.events.count(), 1)

    def test_missing_application(self):
        resp = self.client.patch(
            reverse("application_detail", args=[999999]), **as_json({"status": "reviewed"}), **auth(self.employer)
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "Application not found")

    def test_put_records_notes_in_history(self):
        resp = self.client.put(
            self.url, **as_json({"status": "reviewed", "notes": "Strong SQL"}), **auth(self.employer)
        )
        self.assertEqual(resp.status_code, 200)
        events = list(self.application.events.values_list("status", "note", "actor_id"))
        self.assertEqual(
            events,
            [
                (ApplicationStatus.PENDING, "Application submitted", self.candidate.pk),
                (ApplicationStatus.REVIEWED, "Strong SQL", self.employer.pk),
            ],
        )

    def test_non_text_notes_rejected(self):
        resp = self.client.put(self.url, **as_json({"status": "reviewed", "notes": 5}), **auth(self.employer))
        self.assertEqual(resp.status_code, 400)

    def test_stale_version_conflicts(self):
        resp = self.client.patch(
            self.url, **as_json({"status": "reviewed"}), HTTP_IF_MATCH="3", **auth(self.employer)
        )
        self.assertEqual(resp.status_code, 409)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.PENDING)

    def test_unauthenticated(self):
        resp = self.client.patch(self.url, **as_json({"status": "reviewed"}))
        self.assertEqual(resp.status_code, 401)


class DeleteApplicationTests(ApplicationTestCase):
    def setUp(self):
        super().setUp()
        self.application = submit_application(self.candidate, self.job.pk, "Hello", resume_file())
        self.url = reverse("application_detail", args=[self.application.pk])

    def test_delete_removes_row_file_and_back_reference(self):
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Application.objects.filter(pk=self.application.pk).exists())
        self.assertEqual(self.job.application_ids, [])
        self.assertEqual(self.stored_resumes(), [])

        again = self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(again.status_code, 404)

    def test_delete_tolerates_missing_file(self):
        self.resume_on_disk(self.application.resume).unlink()
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Application.objects.exists())

    def test_non_owner_cannot_delete(self):
        resp = self.client.delete(self.url, **auth(self.other_employer))
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(Application.objects.filter(pk=self.application.pk).exists())
        self.assertEqual(len(self.stored_resumes()), 1)

    def test_candidate_can_reapply_after_removal(self):
        self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(self.submit().status_code, 201)

    def test_file_kept_until_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            resp = self.client.delete(self.url, **auth(self.employer))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(self.resume_on_disk(self.application.resume).exists())
        self.assertEqual(len(callbacks), 1)

        callbacks[0]()
        self.assertEqual(self.stored_resumes(), [])

    def test_rejected_delete_schedules_no_file_removal(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            resp = self.client.delete(self.url, HTTP_IF_MATCH="9", **auth(self.employer))
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(callbacks, [])
        self.assertTrue(self.resume_on_disk(self.application.resume).exists())

    def test_wrong_method_gets_json_envelope(self):
        resp = self.client.get(self.url, **auth(self.employer))
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(resp.json()["kind"], "method_not_allowed")


class ResumeStorageTests(TempMediaMixin, TestCase):
    def test_delete_refuses_paths_outside_upload_prefix(self):
        self.assertFalse(delete_resume("/etc/passwd"))
        self.assertFalse(delete_resume("/uploads/../settings.py"))
        self.assertFalse(delete_resume("/uploads/resumes/../../jobportal/settings.py"))

    def test_delete_absent_file(self):
        self.assertFalse(delete_resume("/uploads/resumes/never-stored.pdf"))
