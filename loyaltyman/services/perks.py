"""Tier benefit and special offer services."""

import logging
from datetime import datetime

from loyaltyman.conf import current_time
from loyaltyman.exceptions import NotFound, ValidationFailure
from loyaltyman.models import LoyaltyTier, SpecialOffer, TierBenefit

logger = logging.getLogger(__name__)


def _check_tier(tier: str) -> str:
    if tier not in LoyaltyTier.values:
        raise ValidationFailure("INVALID_TIER", tier=tier)
    return tier


class BenefitService:
    """Standing benefits per tier."""

    @classmethod
    def list_for_tier(cls, tier: str, include_inactive: bool = False) -> list[TierBenefit]:
        """Benefits of a tier, most recently updated first."""
        qs = TierBenefit.objects.filter(tier=_check_tier(tier))
        if not include_inactive:
            qs = qs.filter(is_active=True)
        return list(qs)

    @classmethod
    def add(cls, tier: str, benefit: str) -> TierBenefit:
        if not (benefit or "").strip():
            raise ValidationFailure("INVALID_DESCRIPTION", message="Benefit text is required")
        return TierBenefit.objects.create(
            tier=_check_tier(tier),
            benefit=benefit.strip(),
            updated_at=current_time(),
        )

    @classmethod
    def set_active(cls, benefit_id: int, active: bool) -> TierBenefit:
        try:
            benefit = TierBenefit.objects.get(pk=benefit_id)
        except TierBenefit.DoesNotExist:
            raise NotFound("BENEFIT_NOT_FOUND", benefit_id=benefit_id)

        benefit.is_active = active
        benefit.updated_at = current_time()
        benefit.save(update_fields=["is_active", "updated_at"])
        return benefit


class OfferService:
    """Limited-time offers per tier."""

    @classmethod
    def list_for_tier(cls, tier: str, now: datetime | None = None) -> list[SpecialOffer]:
        """Active offers of a tier that are still valid at now."""
        now = now or current_time()
        return list(
            SpecialOffer.objects.filter(
                tier=_check_tier(tier),
                is_active=True,
                valid_until__gt=now,
            )
        )

    @classmethod
    def create(
        cls,
        tier: str,
        title: str,
        valid_until: datetime,
        description: str = "",
    ) -> SpecialOffer:
        offer = SpecialOffer.objects.create(
            tier=_check_tier(tier),
            title=title,
            description=description,
            valid_until=valid_until,
            is_active=True,
        )
        logger.info("Special offer %s created for tier %s", offer.pk, tier)
        return offer

    @classmethod
    def set_active(cls, offer_id: int, active: bool) -> SpecialOffer:
        try:
            offer = SpecialOffer.objects.get(pk=offer_id)
        except SpecialOffer.DoesNotExist:
            raise NotFound("OFFER_NOT_FOUND", offer_id=offer_id)

        offer.is_active = active
        offer.save(update_fields=["is_active"])
        return offer
