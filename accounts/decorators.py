import logging
from functools import wraps

from django.core import signing

from jobportal.exceptions import Forbidden, Unauthenticated
from .models import User
from .tokens import read_token

logger = logging.getLogger(__name__)


def _bearer_token(request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    # Older clients send the raw token in x-auth-token.
    return request.headers.get("x-auth-token") or None


def authenticate_request(request) -> User:
    token = _bearer_token(request)
    if not token:
        raise Unauthenticated()
    try:
        user_id = read_token(token)
    except signing.SignatureExpired:
        raise Unauthenticated("Token has expired. Please log in again.")
    except signing.BadSignature:
        raise Unauthenticated("Token is not valid")
    user = User.objects.filter(pk=user_id, is_active=True).first()
    if user is None:
        logger.warning("Token for unknown or inactive user: user_id=%s", user_id)
        raise Unauthenticated("Token is not valid")
    return user


def token_required(view_func):
    """Resolve the bearer token to ``request.user`` or fail with 401."""

    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        request.user = authenticate_request(request)
        return view_func(request, *args, **kwargs)

    return _wrapped


def role_required(role: str):
    """Ensure the token's user has the given role."""

    def decorator(view_func):
        @token_required
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if request.user.role != role:
                raise Forbidden(f"Only {str(role)}s can perform this action")
            return view_func(request, *args, **kwargs)

        return _wrapped

    return decorator


employer_required = role_required(User.Role.EMPLOYER)
candidate_required = role_required(User.Role.CANDIDATE)
