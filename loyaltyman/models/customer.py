"""Customer model - loyalty account state.

Data architecture:
    Customer.points_balance / Customer.tier
        Denormalized cache of the ledger. points_balance always equals the
        sum of the customer's PointTransaction rows and tier always equals
        the tier table lookup of that balance. Only LedgerService writes
        them, inside the same atomic block that appends the ledger row.

    Customer.verification_code
        Short code a field partner asks the customer to show. Reissued on
        every login by VerificationCodeIssuer.

    Customer.secret
        Django password hash (never the raw secret).
"""

from django.core.validators import RegexValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

MOBILE_REGEX = r"^\+?[1-9]\d{1,14}$"

mobile_validator = RegexValidator(MOBILE_REGEX, _("Invalid mobile number format"))


class LoyaltyTier(models.TextChoices):
    """Customer loyalty tiers."""

    BRONZE = "bronze", _("Bronze")
    SILVER = "silver", _("Silver")
    GOLD = "gold", _("Gold")
    DIAMOND = "diamond", _("Diamond")


class Customer(models.Model):
    """
    Loyalty program member.

    mobile is the external lookup key (unique). points_balance and tier are
    ledger caches - see module docstring.
    """

    name = models.CharField(_("name"), max_length=200)
    mobile = models.CharField(
        _("mobile"),
        max_length=16,
        unique=True,
        validators=[mobile_validator],
        help_text=_("E.164 mobile number (ex: +5541999998888)"),
    )

    # Ledger cache
    points_balance = models.IntegerField(
        _("points balance"),
        default=0,
        help_text=_("Sum of all point transactions"),
    )
    tier = models.CharField(
        _("tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        default=LoyaltyTier.BRONZE,
    )

    # Partner verification
    verification_code = models.CharField(
        _("verification code"),
        max_length=16,
        blank=True,
        help_text=_("Reissued on every login"),
    )

    # Credential
    secret = models.CharField(_("secret"), max_length=128)

    # Audit
    created_at = models.DateTimeField(_("created at"), default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("customer")
        verbose_name_plural = _("customers")
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.mobile}): {self.points_balance}pts | {self.tier}"
