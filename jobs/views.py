import logging

from django.views.decorators.http import require_GET, require_http_methods

from accounts.decorators import employer_required, token_required
from jobportal.api import api_view, expected_version, ok, parse_json_body

from . import services
from .serializers import serialize_job

logger = logging.getLogger(__name__)


def _safe_int(v):
    try:
        if v is None or v == "":
            return None
        return int(v)
    except (TypeError, ValueError):
        return None


# -----------------------------
# /api/jobs
# -----------------------------
@api_view
@require_http_methods(["GET", "POST"])
def job_collection(request):
    if request.method == "POST":
        return _create_job(request)
    return _list_jobs(request)


def _list_jobs(request):
    page_obj = services.list_active_jobs(
        page=request.GET.get("page") or 1,
        limit=_safe_int(request.GET.get("limit")),
    )
    return ok(
        "Jobs retrieved successfully",
        jobs=[serialize_job(job, with_employer=True) for job in page_obj],
        page=page_obj.number,
        pages=page_obj.paginator.num_pages,
        total=page_obj.paginator.count,
    )


@employer_required
def _create_job(request):
    job = services.create_job(request.user, parse_json_body(request))
    return ok("Job posting created successfully", status=201, job=serialize_job(job))


# -----------------------------
# /api/jobs/employer
# -----------------------------
@api_view
@require_GET
@employer_required
def employer_jobs(request):
    jobs = services.list_employer_jobs(request.user)
    return ok(
        "Employer jobs retrieved successfully",
        jobs=[serialize_job(job, with_applications=True) for job in jobs],
    )


# -----------------------------
# /api/jobs/<id>
# -----------------------------
@api_view
@require_http_methods(["GET", "PUT", "DELETE"])
def job_detail(request, job_id):
    if request.method == "PUT":
        return _update_job(request, job_id)
    if request.method == "DELETE":
        return _delete_job(request, job_id)
    job = services.get_job(job_id)
    return ok("Job retrieved successfully", job=serialize_job(job, with_employer=True, with_applications=True))


@token_required
def _update_job(request, job_id):
    job = services.update_job(request.user, job_id, parse_json_body(request), expected_version(request))
    return ok("Job posting updated successfully", job=serialize_job(job))


@token_required
def _delete_job(request, job_id):
    removed = services.delete_job(request.user, job_id, expected_version(request))
    return ok("Job posting deleted successfully", applicationsRemoved=removed)
