"""Customer account service — signup, lookup, login and deletion.

All write operations that touch >1 record use transaction.atomic().
"""

import logging
import re

from django.contrib.auth.hashers import check_password, make_password
from django.db import DatabaseError, IntegrityError, transaction
from django.utils.crypto import constant_time_compare

from loyaltyman.conf import loyaltyman_settings
from loyaltyman.exceptions import Conflict, NotFound, PersistenceFailure, ValidationFailure
from loyaltyman.models import Customer, PointTransaction, ProcessedGrant
from loyaltyman.models.customer import MOBILE_REGEX
from loyaltyman.services.verification import VerificationCodeIssuer, generate_code
from loyaltyman.signals import customer_created, customer_deleted
from loyaltyman.tiers import get_tier_table

logger = logging.getLogger(__name__)


class CustomerAccountService:
    """
    Customer account operations.

    CORE:
        create(name, mobile, secret)  - Sign up
        get(customer_id)              - Get by ID
        lookup_by_mobile(mobile)      - Get by mobile
        delete(customer_id)           - Delete customer and its ledger

    LOGIN / VERIFICATION:
        login(mobile, secret)         - Reissue code, check secret
        verify(mobile, code)          - Partner code check
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def create(cls, name: str, mobile: str, secret: str | None = None) -> Customer:
        """
        Sign up a new customer.

        Starts with balance 0, the lowest tier and a fresh verification code.

        Args:
            name: Display name (at least 2 characters)
            mobile: Unique mobile number (E.164)
            secret: Raw secret; DEFAULT_CUSTOMER_SECRET when omitted

        Returns:
            Created Customer

        Raises:
            ValidationFailure: If name or mobile are malformed
            Conflict: If the mobile is already registered
        """
        name = (name or "").strip()
        mobile = (mobile or "").strip()
        if len(name) < 2:
            raise ValidationFailure("INVALID_NAME", name=name)
        if not re.fullmatch(MOBILE_REGEX, mobile):
            raise ValidationFailure("INVALID_MOBILE", mobile=mobile)

        if Customer.objects.filter(mobile=mobile).exists():
            raise Conflict("DUPLICATE_MOBILE", mobile=mobile)

        try:
            with transaction.atomic():
                customer = Customer.objects.create(
                    name=name,
                    mobile=mobile,
                    points_balance=0,
                    tier=get_tier_table().lowest.name,
                    verification_code=generate_code(),
                    secret=make_password(secret or loyaltyman_settings.DEFAULT_CUSTOMER_SECRET),
                )
        except IntegrityError:
            # Lost a signup race on the unique mobile
            raise Conflict("DUPLICATE_MOBILE", mobile=mobile)

        logger.info("Customer %s created", customer.pk)
        customer_created.send(sender=Customer, customer=customer)
        return customer

    @classmethod
    def get(cls, customer_id: int) -> Customer:
        try:
            return Customer.objects.get(pk=customer_id)
        except Customer.DoesNotExist:
            raise NotFound("CUSTOMER_NOT_FOUND", customer_id=customer_id)

    @classmethod
    def lookup_by_mobile(cls, mobile: str) -> Customer:
        """
        Get customer by mobile (exact match).

        Raises:
            NotFound: If no customer has this mobile
        """
        try:
            return Customer.objects.get(mobile=(mobile or "").strip())
        except Customer.DoesNotExist:
            raise NotFound("CUSTOMER_NOT_FOUND", mobile=mobile)

    @classmethod
    def list_customers(cls) -> list[Customer]:
        return list(Customer.objects.all())

    @classmethod
    def delete(cls, customer_id: int) -> None:
        """
        Delete a customer together with its ledger rows.

        Transactions, grant keys and the customer go in one atomic block so
        no orphaned ledger entries remain.

        Raises:
            NotFound: If customer not found
            PersistenceFailure: If the delete could not commit
        """
        try:
            with transaction.atomic():
                try:
                    customer = Customer.objects.select_for_update().get(pk=customer_id)
                except Customer.DoesNotExist:
                    raise NotFound("CUSTOMER_NOT_FOUND", customer_id=customer_id)

                mobile = customer.mobile
                PointTransaction.objects.filter(customer_id=customer_id).delete()
                ProcessedGrant.objects.filter(customer_id=customer_id).delete()
                customer.delete()
        except DatabaseError as exc:
            raise PersistenceFailure(
                "PERSISTENCE_FAILED",
                customer_id=customer_id,
                error=str(exc),
            ) from exc

        logger.info("Customer %s deleted", customer_id)
        customer_deleted.send(sender=Customer, customer_id=customer_id, mobile=mobile)

    # ======================================================================
    # LOGIN / VERIFICATION API
    # ======================================================================

    @classmethod
    def login(cls, mobile: str, secret: str | None = None) -> Customer:
        """
        Log a customer in.

        The verification code is reissued on every attempt, before the
        secret is checked, so partners always challenge a fresh code.

        Args:
            mobile: Customer mobile
            secret: Raw secret (optional; skipped when None)

        Returns:
            Customer with the new verification code

        Raises:
            NotFound: If no customer has this mobile
            ValidationFailure: If the secret does not match
        """
        customer = cls.lookup_by_mobile(mobile)
        customer = VerificationCodeIssuer.reissue(customer.pk)

        if secret is not None and not cls.check_secret(customer, secret):
            logger.info("Login failed for customer %s: invalid secret", customer.pk)
            raise ValidationFailure("INVALID_CREDENTIALS", mobile=mobile)

        return customer

    @classmethod
    def verify(cls, mobile: str, code: str) -> Customer:
        """
        Partner check: does the code match the customer's current code?

        Comparison is case-insensitive.

        Returns:
            Customer (with tier) when the code matches

        Raises:
            NotFound: If no customer has this mobile
            ValidationFailure: If the code does not match
        """
        customer = cls.lookup_by_mobile(mobile)
        supplied = (code or "").strip().upper()

        if not supplied or not constant_time_compare(supplied, customer.verification_code.upper()):
            raise ValidationFailure("INVALID_VERIFICATION_CODE", mobile=mobile)

        return customer

    @classmethod
    def check_secret(cls, customer: Customer, raw_secret: str) -> bool:
        return check_password(raw_secret, customer.secret)

    @classmethod
    def set_secret(cls, customer_id: int, raw_secret: str) -> Customer:
        """Replace the customer's secret (stored hashed)."""
        customer = cls.get(customer_id)
        customer.secret = make_password(raw_secret)
        customer.save(update_fields=["secret", "updated_at"])
        return customer
