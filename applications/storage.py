"""Resume files: upload checks, storage under ``resumes/`` and cleanup.

Stored files are addressed by public paths such as
``/uploads/resumes/20250101120000-cv.pdf``; the part after ``MEDIA_URL`` is the
name inside ``default_storage``.
"""

from __future__ import annotations

import logging
from pathlib import PurePath

from django.conf import settings
from django.core.exceptions import SuspiciousFileOperation
from django.core.files.storage import default_storage
from django.db import transaction
from django.utils import timezone
from django.utils.text import get_valid_filename

from jobportal.exceptions import ValidationError

logger = logging.getLogger(__name__)


def validate_upload(upload) -> None:
    """Reject resumes with the wrong extension or over the size limit."""
    suffix = PurePath(upload.name or "").suffix.lower()
    if suffix not in settings.RESUME_ALLOWED_EXTENSIONS:
        discard_upload(upload)
        raise ValidationError(
            "Resume must be a PDF or Word document",
            errors=[{"field": "resume", "message": "Allowed types: .pdf, .doc, .docx"}],
        )
    if upload.size > settings.RESUME_MAX_UPLOAD_SIZE:
        discard_upload(upload)
        limit_mb = settings.RESUME_MAX_UPLOAD_SIZE // (1024 * 1024)
        raise ValidationError(
            f"File size too large. Maximum size is {limit_mb}MB",
            errors=[{"field": "resume", "message": f"Maximum size is {limit_mb}MB"}],
        )


def discard_upload(upload) -> None:
    """Drop an accepted upload that will not be stored (temp files are removed on close)."""
    if upload is not None:
        upload.close()


def _storage_name(upload_name: str) -> str:
    pure = PurePath(upload_name or "resume")
    try:
        stem = get_valid_filename(pure.stem)[:80]
    except SuspiciousFileOperation:
        stem = "resume"
    return f"{settings.RESUME_UPLOAD_DIR}/{timezone.now():%Y%m%d%H%M%S}-{stem}{pure.suffix.lower()}"


def store_resume(upload) -> str:
    saved = default_storage.save(_storage_name(upload.name), upload)
    path = f"{settings.MEDIA_URL}{saved}"
    logger.info("Resume stored: path=%s size=%s", path, upload.size)
    return path


def path_to_name(path: str) -> str | None:
    if not path or not path.startswith(settings.RESUME_UPLOAD_PREFIX):
        return None
    name = path[len(settings.MEDIA_URL):]
    if ".." in PurePath(name).parts:
        return None
    return name


def resume_exists(path: str) -> bool:
    name = path_to_name(path)
    return bool(name) and default_storage.exists(name)


def delete_resume(path: str) -> bool:
    """Delete a stored resume. A file that is already gone is not an error."""
    name = path_to_name(path)
    if name is None:
        logger.warning("Refusing to delete resume outside the upload prefix: path=%s", path)
        return False
    if not default_storage.exists(name):
        logger.info("Resume already absent: path=%s", path)
        return False
    default_storage.delete(name)
    logger.info("Resume deleted: path=%s", path)
    return True


def delete_resumes_on_commit(paths) -> None:
    """Remove stored resumes once the surrounding transaction commits.

    Nothing is touched on rollback, so surviving rows never point at deleted
    files. A file that cannot be removed after commit is logged and left
    behind; the rows referencing it are already gone.
    """
    paths = [p for p in paths if p]
    if not paths:
        return

    def _delete():
        for path in paths:
            try:
                delete_resume(path)
            except OSError:
                logger.exception("Could not delete resume after commit: path=%s", path)

    transaction.on_commit(_delete)
