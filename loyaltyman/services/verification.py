"""Verification code issuer — short codes partners read off the customer's app.

Codes are deliberately short and speakable (6 symbols from a 32-symbol
alphabet without 0/O/1/I). They are a human-relayed secondary check, not a
credential.
"""

import logging

from django.db import DatabaseError, transaction
from django.utils.crypto import get_random_string

from loyaltyman.conf import loyaltyman_settings
from loyaltyman.exceptions import NotFound, PersistenceFailure
from loyaltyman.models import Customer
from loyaltyman.signals import verification_code_issued

logger = logging.getLogger(__name__)


def generate_code(length: int | None = None, alphabet: str | None = None) -> str:
    """Random code from the configured alphabet."""
    return get_random_string(
        length or loyaltyman_settings.VERIFICATION_CODE_LENGTH,
        alphabet or loyaltyman_settings.VERIFICATION_CODE_ALPHABET,
    )


class VerificationCodeIssuer:
    """Issues and rotates customer verification codes."""

    @classmethod
    def reissue(cls, customer_id: int) -> Customer:
        """
        Assign a fresh verification code to the customer.

        The new code always differs from the previous one.

        Args:
            customer_id: Customer ID

        Returns:
            Updated Customer

        Raises:
            NotFound: If customer not found
            PersistenceFailure: If the code could not be saved
        """
        try:
            with transaction.atomic():
                try:
                    customer = Customer.objects.select_for_update().get(pk=customer_id)
                except Customer.DoesNotExist:
                    raise NotFound("CUSTOMER_NOT_FOUND", customer_id=customer_id)

                code = generate_code()
                while code == customer.verification_code:
                    code = generate_code()

                customer.verification_code = code
                customer.save(update_fields=["verification_code", "updated_at"])
        except DatabaseError as exc:
            raise PersistenceFailure(
                "PERSISTENCE_FAILED",
                customer_id=customer_id,
                error=str(exc),
            ) from exc

        logger.info("Verification code reissued for customer %s", customer.pk)
        verification_code_issued.send(sender=Customer, customer=customer)
        return customer
