"""Ledger service — point grants, deductions and history.

Every balance mutation locks the customer row and appends the ledger entry
inside one transaction.atomic() block, so the cached balance and tier never
disagree with the transaction log outside of it.
"""

import logging
from datetime import datetime

from django.db import DatabaseError, transaction

from loyaltyman import multipliers
from loyaltyman.conf import current_time, loyaltyman_settings
from loyaltyman.exceptions import Conflict, NotFound, PersistenceFailure, ValidationFailure
from loyaltyman.gates import GateError, Gates
from loyaltyman.models import Customer, PointTransaction, ProcessedGrant
from loyaltyman.services.events import EventService
from loyaltyman.signals import points_granted
from loyaltyman.tiers import lookup_tier

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 255


class LedgerService:
    """
    Service for the points ledger.

    Uses @classmethod for extensibility (consistent with other services).
    All point mutations use transaction.atomic() with a row lock.
    """

    @classmethod
    def grant(
        cls,
        customer_id: int,
        points: int,
        description: str,
        now: datetime | None = None,
        idempotency_key: str = "",
        created_by: str = "",
    ) -> Customer:
        """
        Grant points to a customer (negative points remove them).

        The highest running special event multiplier is applied before the
        ledger row is written.

        Args:
            customer_id: Customer ID
            points: Raw points, non-zero (negative for deductions)
            description: Reason for the grant
            now: Reference time for event windows (defaults to the clock)
            idempotency_key: Optional key; a repeated key is applied once and
                may not be reused for another customer
            created_by: Who triggered the grant

        Returns:
            Updated Customer

        Raises:
            NotFound: If customer not found
            Conflict: If idempotency_key was already used for another customer
            ValidationFailure: If points/description are malformed, or the
                balance floor is enforced and would be crossed
            PersistenceFailure: If the unit of work could not commit
        """
        cls._validate_points(points)
        description = cls._validate_description(description)
        now = now or current_time()

        try:
            with transaction.atomic():
                customer = cls._get_customer_for_update(customer_id)

                if idempotency_key:
                    try:
                        Gates.grant_replay(idempotency_key)
                    except GateError as exc:
                        owner_id = exc.details["customer_id"]
                        if owner_id != customer.pk:
                            raise Conflict(
                                "GRANT_KEY_CONFLICT",
                                key=idempotency_key,
                                customer_id=customer.pk,
                                owner_id=owner_id,
                            ) from exc
                        logger.warning(
                            "Grant key %s already applied to customer %s, skipping",
                            idempotency_key,
                            customer_id,
                        )
                        return customer

                multiplier = EventService.current_multiplier(now)
                effective = multipliers.apply(points, multiplier)
                new_balance = customer.points_balance + effective

                if loyaltyman_settings.ENFORCE_BALANCE_FLOOR and new_balance < 0:
                    raise ValidationFailure(
                        "INSUFFICIENT_POINTS",
                        available=customer.points_balance,
                        requested=-effective,
                    )

                tx = PointTransaction.objects.create(
                    customer=customer,
                    points=effective,
                    raw_points=points,
                    multiplier=multiplier,
                    description=description,
                    created_at=now,
                    created_by=created_by,
                )

                if idempotency_key:
                    ProcessedGrant.objects.create(
                        key=idempotency_key,
                        customer_id=customer.pk,
                        transaction_id=tx.pk,
                    )

                customer.points_balance = new_balance
                customer.tier = lookup_tier(new_balance).name
                customer.save(update_fields=["points_balance", "tier", "updated_at"])
        except DatabaseError as exc:
            logger.exception("Grant to customer %s failed", customer_id)
            raise PersistenceFailure(
                "PERSISTENCE_FAILED",
                customer_id=customer_id,
                error=str(exc),
            ) from exc

        logger.info(
            "Granted %s points (raw %s, x%s) to customer %s: balance %s, tier %s",
            effective,
            points,
            multiplier,
            customer.pk,
            customer.points_balance,
            customer.tier,
        )
        points_granted.send(sender=PointTransaction, customer=customer, transaction=tx)
        return customer

    @classmethod
    def deduct(
        cls,
        customer_id: int,
        points: int,
        description: str,
        **kwargs,
    ) -> Customer:
        """
        Remove points from a customer.

        Same path as grant() with the magnitude negated. The balance may go
        below zero unless ENFORCE_BALANCE_FLOOR is set.

        Args:
            customer_id: Customer ID
            points: Positive magnitude to remove
            description: Reason for the deduction
            **kwargs: Passed to grant() (now, idempotency_key, created_by)

        Raises:
            ValidationFailure: If points is not a positive integer
        """
        if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
            raise ValidationFailure(
                "INVALID_POINTS",
                message="Points to deduct must be a positive integer",
                points=points,
            )
        return cls.grant(customer_id, -points, description, **kwargs)

    @classmethod
    def history(cls, customer_id: int, limit: int | None = None) -> list[PointTransaction]:
        """
        Transaction history, newest first.

        Raises:
            NotFound: If customer not found
            ValidationFailure: If limit is not a non-negative integer
        """
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
            raise ValidationFailure("INVALID_LIMIT", limit=limit)
        if not Customer.objects.filter(pk=customer_id).exists():
            raise NotFound("CUSTOMER_NOT_FOUND", customer_id=customer_id)

        qs = PointTransaction.objects.filter(customer_id=customer_id)
        if limit is not None:
            qs = qs[:limit]
        return list(qs)

    @classmethod
    def recompute(cls, customer_id: int) -> Customer:
        """
        Rebuild the cached balance and tier from the ledger.

        Repair path for data restored from outside the ledger.
        """
        with transaction.atomic():
            customer = cls._get_customer_for_update(customer_id)
            balance = Gates.ledger_sum(customer.pk)
            tier = lookup_tier(balance).name

            if customer.points_balance != balance or customer.tier != tier:
                logger.warning(
                    "Customer %s cache drifted: balance %s -> %s, tier %s -> %s",
                    customer.pk,
                    customer.points_balance,
                    balance,
                    customer.tier,
                    tier,
                )
                customer.points_balance = balance
                customer.tier = tier
                customer.save(update_fields=["points_balance", "tier", "updated_at"])

        return customer

    @classmethod
    def _get_customer_for_update(cls, customer_id: int) -> Customer:
        """
        Get customer with row-level lock for mutation.

        MUST be called inside transaction.atomic().
        Prevents lost-update race conditions on concurrent grants.
        """
        try:
            return Customer.objects.select_for_update().get(pk=customer_id)
        except Customer.DoesNotExist:
            raise NotFound("CUSTOMER_NOT_FOUND", customer_id=customer_id)

    @classmethod
    def _validate_points(cls, points) -> None:
        if isinstance(points, bool) or not isinstance(points, int) or points == 0:
            raise ValidationFailure("INVALID_POINTS", points=points)

    @classmethod
    def _validate_description(cls, description) -> str:
        if not isinstance(description, str) or not description.strip():
            raise ValidationFailure("INVALID_DESCRIPTION")
        description = description.strip()
        if len(description) > DESCRIPTION_MAX_LENGTH:
            raise ValidationFailure(
                "INVALID_DESCRIPTION",
                message=f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters",
            )
        return description
