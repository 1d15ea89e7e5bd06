"""Bearer tokens: a signed, timestamped ``{"user_id": ...}`` payload."""

from __future__ import annotations

from django.conf import settings
from django.core import signing


def make_token(user) -> str:
    return signing.dumps({"user_id": user.pk}, salt=settings.AUTH_TOKEN_SALT, compress=True)


def read_token(token: str) -> int:
    """Return the user id in ``token``.

    Raises ``signing.SignatureExpired`` or ``signing.BadSignature`` when the
    token is stale or forged; callers map both to a 401.
    """
    payload = signing.loads(token, salt=settings.AUTH_TOKEN_SALT, max_age=settings.AUTH_TOKEN_MAX_AGE)
    try:
        return int(payload["user_id"])
    except (KeyError, TypeError, ValueError):
        raise signing.BadSignature("Token payload has no user id")
