"""
ProcessedGrant model for grant de-duplication.

Stores caller-supplied idempotency keys so a retried "add points" request
is applied once.
"""

from datetime import timedelta

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class ProcessedGrant(models.Model):
    """Idempotency key of an applied grant."""

    key = models.CharField(verbose_name=_("key"), max_length=255, unique=True)
    customer_id = models.BigIntegerField(verbose_name=_("customer id"), db_index=True)
    transaction_id = models.BigIntegerField(verbose_name=_("transaction id"))
    processed_at = models.DateTimeField(verbose_name=_("processed at"), auto_now_add=True)

    class Meta:
        verbose_name = _("processed grant")
        verbose_name_plural = _("processed grants")
        indexes = [
            models.Index(fields=["processed_at"], name="loyaltyman_grant_processed_idx"),
        ]

    def __str__(self):
        return f"{self.key[:20]} -> tx {self.transaction_id}"

    @classmethod
    def expired(cls, days: int):
        """Keys processed more than N days ago."""
        return cls.objects.filter(processed_at__lt=timezone.now() - timedelta(days=days))

    @classmethod
    def cleanup_old_keys(cls, days: int | None = None):
        """Remove keys older than N days."""
        if days is None:
            from loyaltyman.conf import loyaltyman_settings
            days = loyaltyman_settings.GRANT_KEY_RETENTION_DAYS
        return cls.expired(days).delete()
