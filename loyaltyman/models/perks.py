"""Tier benefits and special offers shown to customers of a tier."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from loyaltyman.models.customer import LoyaltyTier


class TierBenefit(models.Model):
    """Standing benefit unlocked by a tier (ex: free dessert)."""

    tier = models.CharField(
        _("tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        db_index=True,
    )
    benefit = models.CharField(_("benefit"), max_length=255)
    is_active = models.BooleanField(_("active"), default=True)
    updated_at = models.DateTimeField(_("updated at"), default=timezone.now)

    class Meta:
        verbose_name = _("tier benefit")
        verbose_name_plural = _("tier benefits")
        ordering = ["-updated_at"]

    def __str__(self):
        return f"[{self.tier}] {self.benefit}"


class SpecialOffer(models.Model):
    """Limited-time offer for customers of a tier."""

    tier = models.CharField(
        _("tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        db_index=True,
    )
    title = models.CharField(_("title"), max_length=200)
    description = models.TextField(_("description"), blank=True)
    valid_until = models.DateTimeField(_("valid until"))
    is_active = models.BooleanField(_("active"), default=True)
    created_at = models.DateTimeField(_("created at"), default=timezone.now)

    class Meta:
        verbose_name = _("special offer")
        verbose_name_plural = _("special offers")
        ordering = ["valid_until"]

    def __str__(self):
        return f"[{self.tier}] {self.title}"
