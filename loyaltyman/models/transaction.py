"""PointTransaction model - the append-only points ledger."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class ImmutableTransactionError(Exception):
    """Raised when code tries to modify a written ledger row."""


class PointTransaction(models.Model):
    """
    Immutable record of a point change.

    Every grant and every deduction is logged here with the multiplier
    already applied. Rows are append-only: saving an existing row raises.
    """

    customer = models.ForeignKey(
        "loyaltyman.Customer",
        on_delete=models.CASCADE,
        related_name="transactions",
        verbose_name=_("customer"),
    )

    points = models.IntegerField(
        _("points"),
        help_text=_("Signed delta, multiplier already applied"),
    )
    raw_points = models.IntegerField(
        _("raw points"),
        help_text=_("Signed delta as entered, before the multiplier"),
    )
    multiplier = models.PositiveIntegerField(_("multiplier"), default=1)

    description = models.CharField(
        _("description"),
        max_length=255,
        help_text=_("Reason for the transaction"),
    )

    created_at = models.DateTimeField(_("created at"), default=timezone.now, db_index=True)
    created_by = models.CharField(_("created by"), max_length=100, blank=True)

    class Meta:
        verbose_name = _("point transaction")
        verbose_name_plural = _("point transactions")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["customer", "-created_at"], name="loyaltyman_tx_customer_idx"),
        ]

    def __str__(self):
        sign = "+" if self.points > 0 else ""
        return f"{sign}{self.points}pts — {self.description}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableTransactionError("Point transactions are append-only.")
        super().save(*args, **kwargs)
