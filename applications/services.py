"""Application lifecycle: submission, listings, status changes, deletion.

Every rejected submission discards the uploaded resume, and a resume that
has already been written to storage is deleted again if the application row
cannot be created. Status is a plain enumerated attribute: the owning
employer may set any value at any time.
"""

from __future__ import annotations

import logging
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from accounts.models import User
from jobportal.exceptions import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from jobs.models import Job
from jobs.services import ensure_version, get_owned_job, parse_id

from . import storage
from .models import Application, ApplicationEvent, ApplicationStatus

logger = logging.getLogger(__name__)

ALREADY_APPLIED = "You have already applied for this job"


def record_application_event(application: Application, status: str, note: str = "", actor: User | None = None):
    """Append a row to the application's status timeline."""
    return ApplicationEvent.objects.create(application=application, status=status, note=note or "", actor=actor)


def submit_application(candidate: User, job_id: Any, cover_letter: str | None, resume) -> Application:
    cover_letter = (cover_letter or "").strip()

    errors = []
    if not str(job_id or "").strip():
        errors.append({"field": "job", "message": "Job ID is required"})
    if not cover_letter:
        errors.append({"field": "coverLetter", "message": "Cover letter is required"})
    if resume is None:
        errors.append({"field": "resume", "message": "Resume file is required"})
    if errors:
        storage.discard_upload(resume)
        raise ValidationError("Validation failed", errors=errors)

    job = Job.objects.filter(pk=parse_id(job_id)).first()
    if job is None:
        storage.discard_upload(resume)
        raise NotFound("Job not found")

    if not job.is_open():
        storage.discard_upload(resume)
        raise InvalidState("This job is no longer accepting applications")

    if Application.objects.filter(job=job, candidate=candidate).exists():
        storage.discard_upload(resume)
        raise Conflict(ALREADY_APPLIED)

    resume_path = storage.store_resume(resume)
    try:
        with transaction.atomic():
            application = Application(job=job, candidate=candidate, cover_letter=cover_letter, resume=resume_path)
            application.clean_fields(exclude=["job", "candidate"])
            application.save()
            record_application_event(application, application.status, "Application submitted", actor=candidate)
    except IntegrityError:
        # Lost a race with a concurrent submission for the same (job, candidate).
        storage.delete_resume(resume_path)
        raise Conflict(ALREADY_APPLIED)
    except DjangoValidationError as exc:
        storage.delete_resume(resume_path)
        raise ValidationError(
            "Validation failed",
            errors=[{"field": field, "message": msg} for field, msgs in exc.message_dict.items() for msg in msgs],
        )
    except Exception:
        storage.delete_resume(resume_path)
        raise

    logger.info(
        "Application submitted: app_id=%s job_id=%s candidate=%s",
        application.pk,
        job.pk,
        candidate.pk,
    )
    return application


def list_candidate_applications(candidate: User):
    return Application.objects.for_candidate(candidate).select_related("job").recent()


def list_job_applications(requester: User, job_id: Any):
    job = get_owned_job(requester, job_id)
    return (
        Application.objects.for_job(job)
        .select_related("candidate")
        .prefetch_related("events")
        .recent()
    )


def _get_managed_application(requester: User, application_id: Any) -> Application:
    """Load an application for mutation by the employer who owns its job."""
    application = (
        Application.objects.select_for_update()
        .filter(pk=parse_id(application_id))
        .first()
    )
    if application is None:
        raise NotFound("Application not found")

    job = Job.objects.filter(pk=application.job_id).first()
    if job is None:
        raise NotFound("Job not found")

    if job.employer_id != requester.pk:
        logger.warning(
            "Application access denied: app_id=%s owner=%s requester=%s",
            application.pk,
            job.employer_id,
            requester.pk,
        )
        raise Forbidden("Not authorized to manage this application")
    return application


@transaction.atomic
def update_status(
    requester: User,
    application_id: Any,
    status: Any,
    note: Any = None,
    expected_version: int | None = None,
) -> Application:
    application = _get_managed_application(requester, application_id)

    if status not in ApplicationStatus.values:
        raise ValidationError(
            "Invalid status provided",
            errors=[{"field": "status", "message": f"Status must be one of: {', '.join(ApplicationStatus.values)}"}],
        )
    if note is not None and not isinstance(note, str):
        raise ValidationError("Invalid notes", errors=[{"field": "notes", "message": "Notes must be text"}])

    ensure_version(application, expected_version, "Application")

    previous = application.status
    application.status = status
    application.version += 1
    application.save(update_fields=["status", "version", "updated_at"])
    record_application_event(application, status, (note or "").strip(), actor=requester)

    logger.info(
        "Application status updated: app_id=%s from=%s to=%s employer=%s",
        application.pk,
        previous,
        status,
        requester.pk,
    )
    return application


def delete_application(requester: User, application_id: Any, expected_version: int | None = None) -> None:
    with transaction.atomic():
        application = _get_managed_application(requester, application_id)
        ensure_version(application, expected_version, "Application")

        app_pk, job_pk, resume_path = application.pk, application.job_id, application.resume
        application.delete()
        storage.delete_resumes_on_commit([resume_path])

    logger.info("Application deleted: app_id=%s job_id=%s employer=%s", app_pk, job_pk, requester.pk)
