import logging

from django.contrib.auth import authenticate
from django.views.decorators.http import require_GET, require_POST

from jobportal.api import api_view, ok, parse_json_body
from jobportal.exceptions import ValidationError

from .decorators import token_required
from .forms import LoginForm, RegistrationForm
from .tokens import make_token

logger = logging.getLogger(__name__)


@api_view
@require_POST
def register(request):
    form = RegistrationForm(parse_json_body(request))
    if not form.is_valid():
        raise ValidationError.from_form(form)

    user = form.save()
    logger.info("User registered: user_id=%s role=%s", user.pk, user.role)
    return ok(
        "Registration successful! Welcome to Job Portal.",
        status=201,
        token=make_token(user),
        user=user.as_dict(),
    )


@api_view
@require_POST
def login(request):
    form = LoginForm(parse_json_body(request))
    if not form.is_valid():
        raise ValidationError.from_form(form)

    email = form.cleaned_data["email"].strip().lower()
    user = authenticate(request, username=email, password=form.cleaned_data["password"])
    if user is None:
        logger.warning("Login failed: email=%s", email)
        raise ValidationError(
            "Invalid email or password.",
            errors=[{"field": "password", "message": "Invalid credentials"}],
        )

    logger.info("User logged in: user_id=%s", user.pk)
    return ok("Login successful! Welcome back.", token=make_token(user), user=user.as_dict())


@api_view
@require_GET
@token_required
def me(request):
    return ok("Current user", user=request.user.as_dict())
