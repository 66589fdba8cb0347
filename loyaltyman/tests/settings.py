"""
Django settings for Loyaltyman tests.

The test database is a SQLite file (not :memory:) opened with IMMEDIATE
transactions so concurrent writers in threaded tests queue on the lock
instead of failing.
"""

import os
import tempfile

SECRET_KEY = "test-secret-key-for-loyaltyman-tests"

DEBUG = True

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.admin",
    "loyaltyman",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.path.join(tempfile.gettempdir(), "loyaltyman.sqlite3"),
        "OPTIONS": {
            "transaction_mode": "IMMEDIATE",
            "timeout": 20,
        },
        "TEST": {
            "NAME": os.path.join(tempfile.gettempdir(), "loyaltyman_test.sqlite3"),
        },
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Fast hashing for customer secrets
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

USE_TZ = True
TIME_ZONE = "America/Sao_Paulo"

LOYALTYMAN = {}
