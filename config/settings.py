"""
Django settings for the socialgraph project.

Every deployment-specific value comes from the environment. Token
lifetimes are duration literals ("900", "60*15", "15m", "7d") and are
parsed by ``socialgraph.tokens.parse_duration``; they are never evaluated.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("SECRET_KEY", "django-insecure-socialgraph-dev-key")

DEBUG = _env_bool("DEBUG", False)

ALLOWED_HOSTS = [h for h in os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "socialgraph",
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

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

AUTH_USER_MODEL = "socialgraph.Identity"

AUTHENTICATION_BACKENDS = [
    "socialgraph.backends.EmailBackend",
    "django.contrib.auth.backends.ModelBackend",
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "socialgraph.authentication.BearerCredentialCheck",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "EXCEPTION_HANDLER": "socialgraph.handlers.exception_handler",
}

# Tokens and refresh sessions
JWT_SECRET = os.environ.get("JWT_SECRET", SECRET_KEY)
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_TTL = os.environ.get("SESSION_EXPIRY", "60*15")
REFRESH_TOKEN_TTL = os.environ.get("REFRESH_TOKEN_EXPIRY", "60*60*24*30")

REFRESH_COOKIE_NAME = "refreshToken"
REFRESH_COOKIE_SALT = os.environ.get("COOKIE_SECRET", "socialgraph.refresh")
REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", not DEBUG)

# Unset means unbounded concurrent sessions per identity.
MAX_SESSIONS_PER_IDENTITY = int(os.environ["MAX_SESSIONS_PER_IDENTITY"]) if os.environ.get("MAX_SESSIONS_PER_IDENTITY") else None
VALIDATE_SESSION_ON_EVERY_REQUEST = _env_bool("VALIDATE_SESSION_ON_EVERY_REQUEST", False)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "socialgraph": {
            "handlers": ["console"],
            "level": os.environ.get("SOCIALGRAPH_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
