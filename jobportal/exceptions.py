"""Error taxonomy shared by the jobs and applications apps.

Services raise these; ``jobportal.api.api_view`` turns them into JSON
responses of the form ``{"success": false, "kind", "message", "errors"}``.
"""

from __future__ import annotations

from typing import Any


class JobPortalError(Exception):
    kind = "error"
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None, *, errors: list[dict[str, Any]] | None = None):
        self.message = message or self.default_message
        self.errors = list(errors or [])
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": False,
            "kind": self.kind,
            "message": self.message,
        }
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(JobPortalError):
    kind = "validation_error"
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def from_form(cls, form, message: str | None = None) -> "ValidationError":
        """Flatten Django form errors into ``[{field, message}]``."""
        errors = []
        for field, messages in form.errors.get_json_data().items():
            for item in messages:
                errors.append({"field": field, "message": item["message"]})
        return cls(message, errors=errors)


class NotFound(JobPortalError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class Forbidden(JobPortalError):
    kind = "forbidden"
    status_code = 403
    default_message = "Not authorized"


class Conflict(JobPortalError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflict"


class InvalidState(JobPortalError):
    kind = "invalid_state"
    status_code = 400
    default_message = "Action not allowed in the current state"


class UnhandledError(JobPortalError):
    kind = "unhandled_error"
    status_code = 500
    default_message = "Server error"


class Unauthenticated(JobPortalError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "No authentication token provided. Please log in."


class MethodNotAllowed(JobPortalError):
    kind = "method_not_allowed"
    status_code = 405
    default_message = "Method not allowed"
