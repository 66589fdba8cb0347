"""Tests for the points ledger."""

from datetime import datetime, timedelta, timezone as dt_timezone
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from loyaltyman.exceptions import Conflict, NotFound, PersistenceFailure, ValidationFailure
from loyaltyman.gates import Gates
from loyaltyman.models import (
    Customer,
    ImmutableTransactionError,
    PointTransaction,
    ProcessedGrant,
    SpecialEvent,
)
from loyaltyman.services.ledger import LedgerService
from loyaltyman.signals import points_granted


pytestmark = pytest.mark.django_db

FROZEN_NOW = datetime(2026, 3, 14, 15, 0, tzinfo=dt_timezone.utc)


def frozen_clock():
    return FROZEN_NOW


def assert_invariants(customer_id):
    """Balance equals ledger sum and tier matches balance."""
    assert Gates.check_balance_matches_ledger(customer_id)
    assert Gates.check_tier_matches_balance(customer_id)


# ═══════════════════════════════════════════════════════════════════
# Grant
# ═══════════════════════════════════════════════════════════════════


class TestGrant:
    """grant() appends one row and updates balance and tier together."""

    def test_signup_then_two_grants(self, customer, now):
        """150000 lands in Silver; correcting back to 100000 returns to Bronze."""
        assert customer.points_balance == 0
        assert customer.tier == "bronze"

        customer = LedgerService.grant(customer.pk, 150000, "bonus", now=now)
        assert customer.points_balance == 150000
        assert customer.tier == "silver"
        assert_invariants(customer.pk)

        customer = LedgerService.grant(customer.pk, -50000, "correction", now=now)
        assert customer.points_balance == 100000
        assert customer.tier == "bronze"
        assert_invariants(customer.pk)

    def test_returned_customer_is_persisted(self, customer, now):
        LedgerService.grant(customer.pk, 300001, "big spender", now=now)
        stored = Customer.objects.get(pk=customer.pk)
        assert stored.points_balance == 300001
        assert stored.tier == "gold"

    def test_transaction_row(self, customer, now):
        LedgerService.grant(customer.pk, 250, "  Pedido #42  ", now=now, created_by="staff:7")

        tx = PointTransaction.objects.get(customer=customer)
        assert tx.points == 250
        assert tx.raw_points == 250
        assert tx.multiplier == 1
        assert tx.description == "Pedido #42"
        assert tx.created_at == now
        assert tx.created_by == "staff:7"

    def test_diamond(self, customer, now):
        customer = LedgerService.grant(customer.pk, 500001, "vip", now=now)
        assert customer.tier == "diamond"

    def test_unknown_customer(self, db, now):
        with pytest.raises(NotFound, match="CUSTOMER_NOT_FOUND"):
            LedgerService.grant(999999, 10, "ghost", now=now)
        assert PointTransaction.objects.count() == 0

    @pytest.mark.parametrize("points", [0, 1.5, "10", None, True])
    def test_invalid_points(self, customer, points):
        with pytest.raises(ValidationFailure, match="INVALID_POINTS"):
            LedgerService.grant(customer.pk, points, "bad")

    @pytest.mark.parametrize("description", ["", "   ", None, "x" * 256])
    def test_invalid_description(self, customer, description):
        with pytest.raises(ValidationFailure, match="INVALID_DESCRIPTION"):
            LedgerService.grant(customer.pk, 10, description)

    def test_signal_sent(self, customer, now):
        received = []

        def handler(sender, customer, transaction, **kwargs):
            received.append((customer.pk, transaction.points))

        points_granted.connect(handler)
        try:
            LedgerService.grant(customer.pk, 40, "signal", now=now)
        finally:
            points_granted.disconnect(handler)

        assert received == [(customer.pk, 40)]


# ═══════════════════════════════════════════════════════════════════
# Multiplier events
# ═══════════════════════════════════════════════════════════════════


class TestGrantWithEvents:
    """The highest running event multiplier is applied before recording."""

    def test_double_points_event(self, customer, make_event, now):
        make_event(multiplier=2, starts=-1, ends=1)

        customer = LedgerService.grant(customer.pk, 1000, "purchase", now=now)

        tx = PointTransaction.objects.get(customer=customer)
        assert tx.points == 2000
        assert tx.raw_points == 1000
        assert tx.multiplier == 2
        assert customer.points_balance == 2000

    def test_inactive_event_ignored(self, customer, make_event, now):
        make_event(multiplier=2)
        make_event(multiplier=3, active=False)

        customer = LedgerService.grant(customer.pk, 100, "purchase", now=now)
        assert customer.points_balance == 200

    def test_overlapping_events_max_wins(self, customer, make_event, now):
        make_event(multiplier=2)
        make_event(multiplier=3)

        customer = LedgerService.grant(customer.pk, 100, "purchase", now=now)
        assert customer.points_balance == 300

    def test_expired_event_ignored(self, customer, make_event, now):
        make_event(multiplier=5, starts=-48, ends=-24)

        customer = LedgerService.grant(customer.pk, 100, "purchase", now=now)
        assert customer.points_balance == 100

    def test_deduction_goes_through_same_path(self, customer, make_event, now):
        """Negative grants are multiplied too (identical path)."""
        LedgerService.grant(customer.pk, 1000, "purchase", now=now)
        make_event(multiplier=2)

        customer = LedgerService.deduct(customer.pk, 100, "refund", now=now)
        assert customer.points_balance == 800
        assert_invariants(customer.pk)

    def test_injected_clock(self, customer, settings):
        """Without an explicit now, event windows use the configured clock."""
        settings.LOYALTYMAN = {"CLOCK": "loyaltyman.tests.test_ledger.frozen_clock"}
        SpecialEvent.objects.create(
            name="Pi day",
            multiplier=3,
            start_at=FROZEN_NOW - timedelta(hours=1),
            end_at=FROZEN_NOW + timedelta(hours=1),
        )

        customer = LedgerService.grant(customer.pk, 10, "pie")

        assert customer.points_balance == 30
        assert PointTransaction.objects.get(customer=customer).created_at == FROZEN_NOW


# ═══════════════════════════════════════════════════════════════════
# Deduct / negative balances
# ═══════════════════════════════════════════════════════════════════


class TestDeduct:
    """deduct() negates a positive magnitude and calls grant()."""

    def test_deduct(self, customer, now):
        LedgerService.grant(customer.pk, 500, "earn", now=now)
        customer = LedgerService.deduct(customer.pk, 200, "redeem", now=now)

        assert customer.points_balance == 300
        assert LedgerService.history(customer.pk)[0].points == -200

    @pytest.mark.parametrize("points", [0, -5, "5", 2.0])
    def test_requires_positive_magnitude(self, customer, points):
        with pytest.raises(ValidationFailure, match="INVALID_POINTS"):
            LedgerService.deduct(customer.pk, points, "bad")

    def test_more_than_balance_goes_negative(self, customer, now):
        """No floor by default: balance goes negative, tier falls back to lowest."""
        LedgerService.grant(customer.pk, 150000, "earn", now=now)
        customer = LedgerService.deduct(customer.pk, 200000, "oops", now=now)

        assert customer.points_balance == -50000
        assert customer.tier == "bronze"
        assert_invariants(customer.pk)

    def test_floor_enforced_when_configured(self, customer, now, settings):
        settings.LOYALTYMAN = {"ENFORCE_BALANCE_FLOOR": True}
        LedgerService.grant(customer.pk, 100, "earn", now=now)

        with pytest.raises(ValidationFailure, match="INSUFFICIENT_POINTS"):
            LedgerService.deduct(customer.pk, 101, "too much", now=now)

        customer.refresh_from_db()
        assert customer.points_balance == 100
        assert PointTransaction.objects.filter(customer=customer).count() == 1

    def test_floor_allows_exact_balance(self, customer, now, settings):
        settings.LOYALTYMAN = {"ENFORCE_BALANCE_FLOOR": True}
        LedgerService.grant(customer.pk, 100, "earn", now=now)

        customer = LedgerService.deduct(customer.pk, 100, "all of it", now=now)
        assert customer.points_balance == 0


# ═══════════════════════════════════════════════════════════════════
# Atomicity
# ═══════════════════════════════════════════════════════════════════


class TestAtomicity:
    """A failed grant leaves balance, tier and ledger untouched."""

    def test_failure_after_ledger_append(self, customer, now):
        """Row appended (step 4) but customer save (step 6) fails."""
        LedgerService.grant(customer.pk, 150000, "earn", now=now)

        with patch.object(Customer, "save", side_effect=DatabaseError("disk full")):
            with pytest.raises(PersistenceFailure, match="PERSISTENCE_FAILED"):
                LedgerService.grant(customer.pk, 200000, "lost", now=now)

        customer.refresh_from_db()
        assert customer.points_balance == 150000
        assert customer.tier == "silver"
        assert [tx.description for tx in LedgerService.history(customer.pk)] == ["earn"]
        assert_invariants(customer.pk)

    def test_failure_keeps_idempotency_key_free(self, customer, now):
        with patch.object(Customer, "save", side_effect=DatabaseError("boom")):
            with pytest.raises(PersistenceFailure):
                LedgerService.grant(customer.pk, 10, "retry me", now=now, idempotency_key="req-1")

        assert not ProcessedGrant.objects.filter(key="req-1").exists()

        customer = LedgerService.grant(customer.pk, 10, "retry me", now=now, idempotency_key="req-1")
        assert customer.points_balance == 10


# ═══════════════════════════════════════════════════════════════════
# Idempotency keys
# ═══════════════════════════════════════════════════════════════════


class TestIdempotency:
    """A repeated idempotency key is applied once."""

    def test_repeated_key_applied_once(self, customer, now):
        LedgerService.grant(customer.pk, 100, "order 1", now=now, idempotency_key="order:1")
        customer = LedgerService.grant(customer.pk, 100, "order 1", now=now, idempotency_key="order:1")

        assert customer.points_balance == 100
        assert PointTransaction.objects.filter(customer=customer).count() == 1

        processed = ProcessedGrant.objects.get(key="order:1")
        assert processed.customer_id == customer.pk

    def test_no_key_applies_every_time(self, customer, now):
        LedgerService.grant(customer.pk, 100, "order", now=now)
        customer = LedgerService.grant(customer.pk, 100, "order", now=now)
        assert customer.points_balance == 200

    def test_different_keys(self, customer, now):
        LedgerService.grant(customer.pk, 100, "a", now=now, idempotency_key="k1")
        customer = LedgerService.grant(customer.pk, 100, "b", now=now, idempotency_key="k2")
        assert customer.points_balance == 200

    def test_key_reused_for_other_customer(self, customer, customer_b, now):
        """A key belongs to the customer it was first applied to."""
        LedgerService.grant(customer.pk, 100, "order 1", now=now, idempotency_key="order:1")

        with pytest.raises(Conflict, match="GRANT_KEY_CONFLICT") as exc_info:
            LedgerService.grant(customer_b.pk, 500, "order 1", now=now, idempotency_key="order:1")

        assert exc_info.value.data["owner_id"] == customer.pk
        customer_b.refresh_from_db()
        assert customer_b.points_balance == 0
        assert PointTransaction.objects.filter(customer=customer_b).count() == 0
        assert ProcessedGrant.objects.get(key="order:1").customer_id == customer.pk


# ═══════════════════════════════════════════════════════════════════
# History
# ═══════════════════════════════════════════════════════════════════


class TestHistory:
    """history() is newest first and read-only."""

    def test_newest_first(self, customer, now):
        LedgerService.grant(customer.pk, 1, "first", now=now - timedelta(minutes=2))
        LedgerService.grant(customer.pk, 2, "second", now=now - timedelta(minutes=1))
        LedgerService.grant(customer.pk, 3, "third", now=now)

        history = LedgerService.history(customer.pk)
        assert [tx.description for tx in history] == ["third", "second", "first"]

    def test_same_timestamp_ordered_by_id(self, customer, now):
        LedgerService.grant(customer.pk, 1, "first", now=now)
        LedgerService.grant(customer.pk, 2, "second", now=now)

        assert [tx.description for tx in LedgerService.history(customer.pk)] == ["second", "first"]

    def test_repeatable(self, customer, now):
        LedgerService.grant(customer.pk, 10, "a", now=now)
        LedgerService.grant(customer.pk, 20, "b", now=now)

        first = [tx.pk for tx in LedgerService.history(customer.pk)]
        second = [tx.pk for tx in LedgerService.history(customer.pk)]
        assert first == second

    def test_limit(self, customer, now):
        for i in range(5):
            LedgerService.grant(customer.pk, 1, f"tx {i}", now=now)
        assert len(LedgerService.history(customer.pk, limit=2)) == 2

    def test_only_own_transactions(self, customer, customer_b, now):
        LedgerService.grant(customer.pk, 10, "mine", now=now)
        LedgerService.grant(customer_b.pk, 20, "theirs", now=now)

        assert [tx.points for tx in LedgerService.history(customer.pk)] == [10]

    def test_empty(self, customer):
        assert LedgerService.history(customer.pk) == []

    @pytest.mark.parametrize("limit", [-1, 1.5, "2", True])
    def test_invalid_limit(self, customer, limit):
        with pytest.raises(ValidationFailure, match="INVALID_LIMIT"):
            LedgerService.history(customer.pk, limit=limit)

    def test_zero_limit(self, customer, now):
        LedgerService.grant(customer.pk, 1, "earn", now=now)
        assert LedgerService.history(customer.pk, limit=0) == []

    def test_unknown_customer(self, db):
        with pytest.raises(NotFound):
            LedgerService.history(424242)


# ═══════════════════════════════════════════════════════════════════
# Recompute
# ═══════════════════════════════════════════════════════════════════


class TestRecompute:
    """recompute() rebuilds the cache from the ledger."""

    def test_repairs_drift(self, customer, now):
        LedgerService.grant(customer.pk, 120000, "earn", now=now)
        Customer.objects.filter(pk=customer.pk).update(points_balance=5, tier="bronze")
        assert not Gates.check_balance_matches_ledger(customer.pk)

        customer = LedgerService.recompute(customer.pk)

        assert customer.points_balance == 120000
        assert customer.tier == "silver"
        assert_invariants(customer.pk)

    def test_noop_when_consistent(self, customer, now):
        LedgerService.grant(customer.pk, 10, "earn", now=now)
        assert LedgerService.recompute(customer.pk).points_balance == 10


class TestImmutability:
    def test_saved_row_cannot_change(self, customer, now):
        LedgerService.grant(customer.pk, 10, "earn", now=now)
        tx = PointTransaction.objects.get(customer=customer)
        tx.points = 1_000_000

        with pytest.raises(ImmutableTransactionError):
            tx.save()

        assert PointTransaction.objects.get(pk=tx.pk).points == 10
