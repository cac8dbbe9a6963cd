import os

# Mock SECRET_KEY for tests BEFORE importing settings to bypass validation
os.environ.setdefault("SECRET_KEY", "django-insecure-test-key-for-unit-tests-only")

from .settings import *  # noqa: F403,E402

# SQLite unless DB_ENGINE names a server backend; with postgresql or mysql the
# row-locking tests in marketplace/tests/integration/test_concurrency.py run too
if "sqlite" in os.environ.get("DB_ENGINE", "django.db.backends.sqlite3"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",  # noqa: F405
        }
    }

# Disable external services
PAYMENT_PROVIDER = "mock"
STRIPE_SECRET_KEY = "sk_test_mock_key"
STRIPE_WEBHOOK_SECRET = "whsec_test_mock_secret"

MARKETPLACE = {
    **MARKETPLACE,  # noqa: F405
    "PAYMENT_INTENT_TIMEOUT_SECONDS": 2.0,
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Enable SessionAuthentication for tests to support client.force_login()
REST_FRAMEWORK["DEFAULT_AUTHENTICATION_CLASSES"].append(  # noqa: F405
    "rest_framework.authentication.SessionAuthentication"
)
