import logging

from django.views.decorators.http import require_GET, require_http_methods

from accounts.decorators import candidate_required, token_required
from jobportal.api import api_view, expected_version, ok, parse_json_body

from . import services, storage
from .serializers import serialize_application

logger = logging.getLogger(__name__)


# -----------------------------
# /api/applications
# -----------------------------
@api_view
@require_http_methods(["GET", "POST"])
def application_collection(request):
    if request.method == "POST":
        return _submit_application(request)
    return _my_applications(request)


@candidate_required
def _my_applications(request):
    applications = services.list_candidate_applications(request.user)
    return ok(
        "Applications retrieved successfully",
        applications=[serialize_application(a, with_job=True) for a in applications],
    )


@candidate_required
def _submit_application(request):
    resume = request.FILES.get("resume")
    if resume is not None:
        storage.validate_upload(resume)

    cover_letter = request.POST.get("coverLetter", request.POST.get("cover_letter"))
    application = services.submit_application(request.user, request.POST.get("job"), cover_letter, resume)
    return ok("Application submitted successfully", status=201, application=serialize_application(application))


# -----------------------------
# /api/applications/job/<job_id> and /api/jobs/<job_id>/applications
# -----------------------------
@api_view
@require_GET
@token_required
def job_applications(request, job_id):
    applications = services.list_job_applications(request.user, job_id)
    return ok(
        "Applications retrieved successfully",
        applications=[serialize_application(a, with_candidate=True, with_history=True) for a in applications],
    )


# -----------------------------
# /api/applications/<id>
# -----------------------------
@api_view
@require_http_methods(["PUT", "PATCH", "DELETE"])
@token_required
def application_detail(request, application_id):
    if request.method == "DELETE":
        services.delete_application(request.user, application_id, expected_version(request))
        return ok("Application removed")
    if request.method == "PUT":
        return _replace_application(request, application_id)
    return _patch_application(request, application_id)


def _replace_application(request, application_id):
    body = parse_json_body(request)
    application = services.update_status(
        request.user,
        application_id,
        body.get("status"),
        note=body.get("notes"),
        expected_version=expected_version(request),
    )
    return ok("Application updated", application=serialize_application(application))


def _patch_application(request, application_id):
    body = parse_json_body(request)
    application = services.update_status(
        request.user,
        application_id,
        body.get("status"),
        expected_version=expected_version(request),
    )
    return ok("Application status updated", application=serialize_application(application))
