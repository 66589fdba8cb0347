"""Pytest fixtures for Loyaltyman tests."""

from datetime import timedelta

import pytest
from django.utils import timezone

from loyaltyman.models import SpecialEvent
from loyaltyman.services.accounts import CustomerAccountService


@pytest.fixture
def now():
    """Fixed reference time for event windows."""
    return timezone.now().replace(microsecond=0)


@pytest.fixture
def customer(db):
    """Fresh customer: balance 0, bronze."""
    return CustomerAccountService.create(
        name="Maria Santos",
        mobile="+5541999990001",
        secret="s3cret!",
    )


@pytest.fixture
def customer_b(db):
    return CustomerAccountService.create(
        name="João Silva",
        mobile="+5541999990002",
    )


@pytest.fixture
def make_event(db, now):
    """Factory for special events around ``now``."""

    def _make(multiplier=2, active=True, starts=-1, ends=1, name="Promo"):
        return SpecialEvent.objects.create(
            name=name,
            description=f"x{multiplier}",
            multiplier=multiplier,
            start_at=now + timedelta(hours=starts),
            end_at=now + timedelta(hours=ends),
            is_active=active,
        )

    return _make
