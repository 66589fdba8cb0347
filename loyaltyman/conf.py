"""
Loyaltyman configuration.

Usage in settings.py:
    LOYALTYMAN = {
        "TIERS": [
            ("bronze", 0, 100000),
            ("silver", 100001, 300000),
            ("gold", 300001, 500000),
            ("diamond", 500001, None),
        ],
        "ENFORCE_BALANCE_FLOOR": False,
        "CLOCK": "django.utils.timezone.now",
    }
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from django.conf import settings
from django.utils.module_loading import import_string


@dataclass
class LoyaltymanSettings:
    """Loyaltyman configuration settings."""

    # Tier table: (name, min_points, max_points) rows, max None = unbounded.
    # Empty means loyaltyman.tiers.DEFAULT_TIERS.
    TIERS: tuple = ()

    # Secret assigned when a customer signs up without one
    DEFAULT_CUSTOMER_SECRET: str = "kitcho123"

    # Partner verification code
    VERIFICATION_CODE_LENGTH: int = 6
    VERIFICATION_CODE_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

    # Dotted path to a zero-argument callable returning an aware datetime
    CLOCK: str = "django.utils.timezone.now"

    # Reject grants that would take a balance below zero
    ENFORCE_BALANCE_FLOOR: bool = False

    # ProcessedGrant cleanup
    GRANT_KEY_RETENTION_DAYS: int = 7

    # Backup files
    BACKUP_DIR: str = "backups"
    BACKUP_MAX_FILES: int = 7


def get_loyaltyman_settings() -> LoyaltymanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LOYALTYMAN", {})
    return LoyaltymanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_loyaltyman_settings(), name)


loyaltyman_settings = _LazySettings()


def current_time() -> datetime:
    """Current time from the configured clock."""
    return import_string(loyaltyman_settings.CLOCK)()
