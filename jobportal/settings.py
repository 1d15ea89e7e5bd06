"""
Django settings for jobportal project.
"""
from pathlib import Path
import os
from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent

# -----------------------------
# Secret key (required)
# -----------------------------
# Signs bearer tokens as well as sessions, so there is no built-in fallback.
SECRET_KEY = os.getenv("JOBPORTAL_SECRET_KEY", "").strip()
if not SECRET_KEY:
    raise ImproperlyConfigured("JOBPORTAL_SECRET_KEY is not set. Export it (or add it to .env) before starting.")

DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"

_default_allowed_hosts = ["127.0.0.1", "localhost", "testserver"]
ALLOWED_HOSTS = (
    os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",")
    if os.getenv("DJANGO_ALLOWED_HOSTS")
    else _default_allowed_hosts
)

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "accounts",
    "jobs",
    "applications",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "jobportal.urls"

# Only the admin renders templates; the API speaks JSON.
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "jobportal.wsgi.application"

# -----------------------------
# Database (PostgreSQL)
# -----------------------------
DB_ENGINE = os.getenv("DB_ENGINE", "django.db.backends.postgresql").strip()
if DB_ENGINE in {"sqlite", "sqlite3", "django.db.backends.sqlite3"}:
    raise ImproperlyConfigured("SQLite is disabled for this project. Please configure PostgreSQL in .env.")
if DB_ENGINE != "django.db.backends.postgresql":
    raise ImproperlyConfigured("Only PostgreSQL is supported. Set DB_ENGINE=django.db.backends.postgresql")

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("DB_NAME", "jobportal_db"),
        "USER": os.getenv("DB_USER", "jobportal_user"),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", "127.0.0.1"),
        "PORT": os.getenv("DB_PORT", "5432"),
    }
}

# -----------------------------
# Custom User Model
# -----------------------------
AUTH_USER_MODEL = "accounts.User"

# Bearer tokens expire after 24h unless overridden
AUTH_TOKEN_MAX_AGE = int(os.getenv("AUTH_TOKEN_MAX_AGE", str(24 * 60 * 60)))
AUTH_TOKEN_SALT = "accounts.bearer-token"

# -----------------------------
# Password validation
# -----------------------------
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator", "OPTIONS": {"min_length": 6}},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
MEDIA_URL = "/uploads/"
MEDIA_ROOT = BASE_DIR / "uploads"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------
# Jobs / applications
# -----------------------------
JOBS_PAGE_SIZE = int(os.getenv("JOBS_PAGE_SIZE", "20"))
JOBS_MAX_PAGE_SIZE = 100
# Deleting a job also deletes its applications and their resumes.
# Set to "0" to refuse deletion of jobs that still have applications.
JOBS_CASCADE_DELETE_APPLICATIONS = os.getenv("JOBS_CASCADE_DELETE_APPLICATIONS", "1") == "1"

RESUME_UPLOAD_DIR = "resumes"
RESUME_UPLOAD_PREFIX = f"{MEDIA_URL}{RESUME_UPLOAD_DIR}/"
RESUME_MAX_UPLOAD_SIZE = 5 * 1024 * 1024
RESUME_ALLOWED_EXTENSIONS = {".pdf", ".doc", ".docx"}

# -----------------------------
# Logging
# -----------------------------
LOG_DIR = BASE_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "[{levelname}] {asctime} {name}: {message}", "style": "{"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "standard"},
        "file": {
            "class": "logging.FileHandler",
            "filename": str(LOG_DIR / "jobportal.log"),
            "formatter": "standard",
            "level": "INFO",
        },
    },
    "root": {"handlers": ["console", "file"], "level": os.getenv("LOG_LEVEL", "INFO")},
}
