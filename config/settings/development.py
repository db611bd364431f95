from .base import *  # noqa

DEBUG = True

# No Redis needed locally.
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Never hit live PayPal from a dev box.
PAYPAL_MODE = "sandbox"

LOGGING["loggers"]["apps"]["level"] = "DEBUG"  # noqa: F405
