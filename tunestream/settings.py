"""
Django settings for tunestream project (music BFF edition)
Adapted for Render free-tier deployment
"""

from pathlib import Path
import os
from dotenv import load_dotenv

# -------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")  # read .env locally


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes")


# -------------------------------------------------------------------
# Security
# -------------------------------------------------------------------
SECRET_KEY = os.getenv("DJANGO_SECRET", "CHANGE_ME_FOR_PRODUCTION")
DEBUG = os.getenv("DJANGO_DEBUG", "False") == "True"

# Accept any host unless explicitly limited (Render assigns a random sub-domain)
raw_hosts = os.getenv("DJANGO_ALLOWED_HOSTS", "*")
ALLOWED_HOSTS = [h.strip() for h in raw_hosts.split(",") if h.strip()]

# -------------------------------------------------------------------
# Installed apps
# -------------------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "music",
]

# -------------------------------------------------------------------
# Middleware / URL routing
# -------------------------------------------------------------------
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "tunestream.urls"

WSGI_APPLICATION = "tunestream.wsgi.application"

# -------------------------------------------------------------------
# Database
# -------------------------------------------------------------------
# The music layer is stateless; nothing here reads or writes a database.
DATABASES = {}

# -------------------------------------------------------------------
# Internationalisation / Time-zone
# -------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# -------------------------------------------------------------------
# REST framework (stateless JSON API, no session auth)
# -------------------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "UNAUTHENTICATED_USER": None,
}

# -------------------------------------------------------------------
# Logging
# -------------------------------------------------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "simple"}},
    "root": {
        "handlers": ["console"],
        "level": os.getenv("DJANGO_LOG_LEVEL", "INFO"),
    },
}

# -------------------------------------------------------------------
# Music providers
# -------------------------------------------------------------------
# "true" skips Spotify entirely; otherwise Spotify is tried first and the
# demo catalogue takes over when it cannot be activated.
USE_DEMO_MODE = env_bool("USE_DEMO_MODE", False)

# Spotify (client-credentials flow)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_MARKET = os.getenv("SPOTIFY_MARKET", "US")

# Jamendo (free catalogue, full-length streams)
JAMENDO_ROOT = os.getenv("JAMENDO_ROOT", "https://api.jamendo.com/v3.0")
JAMENDO_CLIENT_ID = os.getenv("JAMENDO_CLIENT_ID", "ef527c00")

# Upstream timeout (seconds) and response memoisation TTL (seconds)
MUSIC_HTTP_TIMEOUT = float(os.getenv("MUSIC_HTTP_TIMEOUT", "10"))
MUSIC_CACHE_TTL = int(os.getenv("MUSIC_CACHE_TTL", str(60 * 60)))

# -------------------------------------------------------------------
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -------------------------------------------------------------------
# Security headers when deployed behind TLS proxy
# -------------------------------------------------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
if not DEBUG:
    SECURE_HSTS_SECONDS = 31536000
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True

# -------------------------------------------------------------------
# Cache (loc-mem by default, Redis if REDIS_URL set)
# -------------------------------------------------------------------
if os.getenv("REDIS_URL"):
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": os.getenv("REDIS_URL"),
            "OPTIONS": {"CLIENT_CLASS": "django_redis.client.DefaultClient"},
            "TIMEOUT": MUSIC_CACHE_TTL,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "tunestream-cache",
            "TIMEOUT": MUSIC_CACHE_TTL,
        }
    }
