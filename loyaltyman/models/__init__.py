"""Loyaltyman models."""

from loyaltyman.models.customer import Customer, LoyaltyTier
from loyaltyman.models.transaction import PointTransaction, ImmutableTransactionError
from loyaltyman.models.event import SpecialEvent
from loyaltyman.models.perks import TierBenefit, SpecialOffer
from loyaltyman.models.processed_grant import ProcessedGrant

__all__ = [
    # Ledger
    "Customer",
    "LoyaltyTier",
    "PointTransaction",
    "ImmutableTransactionError",
    # Promotions
    "SpecialEvent",
    "TierBenefit",
    "SpecialOffer",
    # Grant de-duplication
    "ProcessedGrant",
]
