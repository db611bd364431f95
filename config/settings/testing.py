from .base import *  # noqa

DEBUG = True

# Use SQLite for testing to avoid needing a running PostgreSQL instance.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

CELERY_TASK_ALWAYS_EAGER = True
CELERY_RESULT_BACKEND = "cache+memory://"

FRONTEND_BASE_URL = "https://app.example.com"
PUBLIC_BASE_URL = "https://api.example.com"

TILOPAY_API_KEY = "test-key"
TILOPAY_API_USER = "test-user"
TILOPAY_API_PASSWORD = "test-password"
TILOPAY_BASE_URL = "https://tilopay.test/api/v1"

PAYPAL_CLIENT_ID = "test-client"
PAYPAL_CLIENT_SECRET = "test-secret"
PAYPAL_MODE = "sandbox"

SUPABASE_URL = "https://storage.example.com"
SUPABASE_SERVICE_ROLE_KEY = "service-role"

DISPATCH_WEBHOOK_URL = "https://automation.example.com/webhook/bulk-send"
SCRAPER_WEBHOOK_URLS = {
    "linkedin": "https://automation.example.com/webhook/linkedin",
    "indeed": "https://automation.example.com/webhook/indeed",
    "glassdoor": "",
    "bayt": "",
    "naukri": "",
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": [],
}
