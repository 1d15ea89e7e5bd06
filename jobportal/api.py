"""JSON plumbing for the API views."""

from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any

from django.db import DatabaseError
from django.http import HttpResponseNotAllowed, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .exceptions import JobPortalError, MethodNotAllowed, UnhandledError, ValidationError

logger = logging.getLogger(__name__)


def api_view(view_func):
    """Exempt a view from CSRF and render every failure as structured JSON."""

    @csrf_exempt
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        try:
            response = view_func(request, *args, **kwargs)
        except JobPortalError as exc:
            if exc.status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.path, exc.message)
            else:
                logger.warning(
                    "%s %s rejected: kind=%s message=%s", request.method, request.path, exc.kind, exc.message
                )
            return error_response(exc)
        except (DatabaseError, OSError):
            logger.exception("%s %s failed in a storage collaborator", request.method, request.path)
            return error_response(UnhandledError())
        except Exception:
            logger.exception("%s %s failed unexpectedly", request.method, request.path)
            return error_response(UnhandledError())

        if isinstance(response, HttpResponseNotAllowed):
            allowed = response["Allow"]
            response = error_response(MethodNotAllowed(f"Method {request.method} not allowed"))
            response["Allow"] = allowed
        return response

    return _wrapped


def error_response(exc: JobPortalError) -> JsonResponse:
    return JsonResponse(exc.as_dict(), status=exc.status_code)


def ok(message: str, status: int = 200, **payload: Any) -> JsonResponse:
    return JsonResponse({"success": True, "message": message, **payload}, status=status)


def parse_json_body(request) -> dict[str, Any]:
    if not request.body:
        return {}
    try:
        data = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def expected_version(request) -> int | None:
    """Read the optimistic-concurrency version from ``If-Match``, if sent."""
    raw = (request.headers.get("If-Match") or "").strip().strip('"')
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("If-Match must carry the integer version of the resource")
