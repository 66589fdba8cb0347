"""SpecialEvent model - time-boxed points multiplier promotions."""

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class SpecialEventQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def running_at(self, now):
        """Active events whose [start_at, end_at] window contains now."""
        return self.active().filter(start_at__lte=now, end_at__gte=now)


class SpecialEvent(models.Model):
    """
    Promotion that multiplies granted points while it runs.

    Events may overlap; the ledger applies the highest running multiplier.
    """

    name = models.CharField(_("name"), max_length=200)
    description = models.TextField(_("description"), blank=True)
    multiplier = models.PositiveIntegerField(
        _("multiplier"),
        validators=[MinValueValidator(1)],
        help_text=_("Points are multiplied by this while the event runs"),
    )
    start_at = models.DateTimeField(_("starts at"), db_index=True)
    end_at = models.DateTimeField(_("ends at"), db_index=True)
    is_active = models.BooleanField(_("active"), default=True)

    created_at = models.DateTimeField(_("created at"), default=timezone.now)

    objects = SpecialEventQuerySet.as_manager()

    class Meta:
        verbose_name = _("special event")
        verbose_name_plural = _("special events")
        ordering = ["-start_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(multiplier__gte=1),
                name="loyaltyman_event_multiplier_gte_1",
            ),
        ]

    def __str__(self):
        return f"{self.name} (x{self.multiplier})"
