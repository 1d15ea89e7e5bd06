"""Job registry: creation, listing, owner-only updates and deletion."""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.core.paginator import Paginator
from django.db import transaction

from accounts.models import User
from applications import storage
from jobportal.exceptions import Conflict, Forbidden, InvalidState, NotFound, ValidationError

from .forms import JobForm, JobUpdateForm
from .models import Job

logger = logging.getLogger(__name__)

# API field name -> form field name
_TEXT_FIELDS = {
    "title": "title",
    "company": "company",
    "location": "location",
    "description": "description",
    "requirements": "requirements",
    "status": "status",
}
_SALARY_FIELDS = {"min": "salary_min", "max": "salary_max", "currency": "salary_currency"}

# Largest value a BigAutoField primary key can hold.
MAX_ID = 2**63 - 1


def parse_id(value: Any) -> int | None:
    """Ids are opaque to clients; anything that is not a positive int resolves to nothing."""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if 0 < parsed <= MAX_ID else None


def ensure_version(instance, expected: int | None, label: str) -> None:
    if expected is not None and instance.version != expected:
        raise Conflict(
            f"{label} was modified by another request (version {instance.version}, expected {expected})"
        )


def _salary_errors(salary: Any) -> list[dict[str, str]]:
    if salary is None:
        return []
    if not isinstance(salary, dict):
        return [{"field": "salary", "message": "Salary must be an object with min, max and currency"}]
    return []


def _form_data(payload: dict[str, Any]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for api_name, form_name in _TEXT_FIELDS.items():
        if api_name in payload:
            data[form_name] = payload[api_name]
    if "type" in payload:
        value = payload["type"]
        data["job_type"] = value.strip().lower() if isinstance(value, str) else value
    salary = payload.get("salary")
    if isinstance(salary, dict):
        for api_name, form_name in _SALARY_FIELDS.items():
            if api_name in salary:
                value = salary[api_name]
                if api_name == "currency" and isinstance(value, str):
                    value = value.strip().upper()
                data[form_name] = value
    return data


def _instance_data(job: Job) -> dict[str, Any]:
    return {
        "title": job.title,
        "company": job.company,
        "location": job.location,
        "job_type": job.job_type,
        "description": job.description,
        "requirements": list(job.requirements or []),
        "salary_min": job.salary_min,
        "salary_max": job.salary_max,
        "salary_currency": job.salary_currency,
        "status": job.status,
    }


def _raise_invalid(form, extra: list[dict[str, str]]) -> None:
    error = ValidationError.from_form(form, "Validation failed") if form.errors else ValidationError()
    # form.errors keys are model field names; report them with API names
    renamed = {"job_type": "type", "salary_min": "salary.min", "salary_max": "salary.max", "salary_currency": "salary.currency"}
    for item in error.errors:
        item["field"] = renamed.get(item["field"], item["field"])
    error.errors = extra + error.errors
    raise error


def create_job(requester: User, payload: dict[str, Any]) -> Job:
    if requester.role != User.Role.EMPLOYER:
        raise Forbidden("Only employers can create job postings")

    salary = payload.get("salary")
    if salary:
        extra = _salary_errors(salary)
    else:
        extra = [{"field": "salary", "message": "Salary information is required"}]

    form = JobForm(_form_data(payload))
    if not form.is_valid() or extra:
        _raise_invalid(form, extra)

    job = form.save(commit=False)
    job.employer = requester
    job.save()
    logger.info("Job created: job_id=%s employer=%s", job.pk, requester.pk)
    return job


def list_active_jobs(page: Any = 1, limit: int | None = None):
    """Return a ``Page`` of active jobs, newest first, with employers resolved."""
    limit = limit or settings.JOBS_PAGE_SIZE
    limit = max(1, min(limit, settings.JOBS_MAX_PAGE_SIZE))
    qs = Job.objects.active().select_related("employer").prefetch_related("applications").recent()
    return Paginator(qs, limit).get_page(page)


def list_employer_jobs(requester: User):
    return Job.objects.for_employer(requester).prefetch_related("applications").recent()


def get_job(job_id: Any) -> Job:
    job = (
        Job.objects.select_related("employer")
        .prefetch_related("applications")
        .filter(pk=parse_id(job_id))
        .first()
    )
    if job is None:
        raise NotFound("Job not found")
    return job


def get_owned_job(requester: User, job_id: Any, *, for_update: bool = False) -> Job:
    qs = Job.objects.select_for_update() if for_update else Job.objects.all()
    job = qs.filter(pk=parse_id(job_id)).first()
    if job is None:
        raise NotFound("Job not found")
    if job.employer_id != requester.pk:
        logger.warning("Job access denied: job_id=%s owner=%s requester=%s", job.pk, job.employer_id, requester.pk)
        raise Forbidden("Not authorized to manage this job posting")
    return job


@transaction.atomic
def update_job(requester: User, job_id: Any, payload: dict[str, Any], expected_version: int | None = None) -> Job:
    job = get_owned_job(requester, job_id, for_update=True)
    ensure_version(job, expected_version, "Job")

    if "employer" in payload:
        logger.info("Ignoring employer change on job update: job_id=%s", job.pk)

    data = _instance_data(job)
    data.update(_form_data(payload))
    form = JobUpdateForm(data, instance=job)
    extra = _salary_errors(payload.get("salary"))
    if not form.is_valid() or extra:
        _raise_invalid(form, extra)

    job = form.save(commit=False)
    job.version += 1
    job.save()
    logger.info("Job updated: job_id=%s employer=%s version=%s", job.pk, requester.pk, job.version)
    return job


def delete_job(requester: User, job_id: Any, expected_version: int | None = None) -> int:
    """Delete a job and, by default, its applications and their resumes.

    Returns the number of applications removed with it.
    """
    with transaction.atomic():
        job = get_owned_job(requester, job_id, for_update=True)
        ensure_version(job, expected_version, "Job")

        resumes = list(job.applications.values_list("resume", flat=True))
        if resumes and not settings.JOBS_CASCADE_DELETE_APPLICATIONS:
            raise InvalidState("This job still has applications. Close it instead of deleting it.")

        job_pk = job.pk
        job.delete()
        storage.delete_resumes_on_commit(resumes)

    logger.info("Job deleted: job_id=%s employer=%s applications_removed=%s", job_pk, requester.pk, len(resumes))
    return len(resumes)
