from pathlib import Path
from datetime import timedelta
from decouple import config, Csv

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = config("SECRET_KEY", default="insecure-base-key-override-me")
DEBUG = config("DEBUG", cast=bool, default=False)
ALLOWED_HOSTS = config("DJANGO_ALLOWED_HOSTS", cast=Csv(), default="localhost,127.0.0.1")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "strawberry_django",
    "apps.campaigns",
    "apps.donations",
    "apps.analytics",
    "apps.caching",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "core.urls"

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
    },
]

ASGI_APPLICATION = "core.asgi.application"

# Overridden per environment
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "apps.campaigns.exceptions.api_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=config("JWT_ACCESS_MINUTES", cast=int, default=60)),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Fundraising Discovery API",
    "VERSION": "0.1.0",
}

# Search index (Meilisearch-compatible HTTP API)
# DRIVER: "meilisearch" queries the index, "database" bypasses it entirely
SEARCH_INDEX = {
    "DRIVER": config("SEARCH_DRIVER", default="meilisearch"),
    "URL": config("SEARCH_INDEX_URL", default="http://localhost:7700"),
    "API_KEY": config("SEARCH_INDEX_API_KEY", default=""),
    "PREFIX": config("SEARCH_INDEX_PREFIX", default=""),
    "INDEX": "campaigns",
    "TIMEOUT": config("SEARCH_INDEX_TIMEOUT", cast=float, default=5.0),
    "BREAKER_FAILURE_THRESHOLD": config("SEARCH_BREAKER_THRESHOLD", cast=int, default=5),
    "BREAKER_RECOVERY_TIMEOUT": config("SEARCH_BREAKER_RECOVERY", cast=int, default=60),
    "OWNER_SEARCH_LIMIT": 1000,
}

# Seconds per cache tier
CAMPAIGN_CACHE_TTL = {
    "short": config("CACHE_TTL_SHORT", cast=int, default=300),
    "medium": config("CACHE_TTL_MEDIUM", cast=int, default=1800),
    "long": config("CACHE_TTL_LONG", cast=int, default=3600),
    "daily": 86400,
    "weekly": 604800,
}
CAMPAIGN_ANALYTICS_BULK_TTL = config("CAMPAIGN_ANALYTICS_BULK_TTL", cast=int, default=1800)

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "fundraising-default",
    }
}

CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="redis://localhost:6379/0")
CELERY_RESULT_BACKEND = config("CELERY_RESULT_BACKEND", default="redis://localhost:6379/1")
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = "UTC"
# Periodic cache warming (tasks/__init__.py)
CAMPAIGN_CACHE_WARMING_ENABLED = config("CAMPAIGN_CACHE_WARMING_ENABLED", cast=bool, default=True)

# Queries slower than this are logged by monitor_query_performance
SLOW_QUERY_THRESHOLD = config("SLOW_QUERY_THRESHOLD", cast=float, default=1.0)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
        },
        "apps": {
            "handlers": ["console"],
            "level": config("APPS_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
        "tasks": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
