"""
Tier table - ordered point ranges mapped to loyalty tiers.

The table is configuration, not code: ``LOYALTYMAN["TIERS"]`` replaces the
default thresholds. Ranges are inclusive, must start at zero and be
contiguous; only the last tier may be unbounded.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from django.core.exceptions import ImproperlyConfigured

from loyaltyman.models.customer import LoyaltyTier


@dataclass(frozen=True)
class Tier:
    """Named tier with an inclusive point range (max None = unbounded)."""

    name: str
    min_points: int
    max_points: int | None = None

    def contains(self, balance: int) -> bool:
        if balance < self.min_points:
            return False
        return self.max_points is None or balance <= self.max_points

    @property
    def label(self) -> str:
        return str(LoyaltyTier(self.name).label)


DEFAULT_TIERS = (
    Tier(LoyaltyTier.BRONZE, 0, 100000),
    Tier(LoyaltyTier.SILVER, 100001, 300000),
    Tier(LoyaltyTier.GOLD, 300001, 500000),
    Tier(LoyaltyTier.DIAMOND, 500001, None),
)


class TierTable:
    """
    Immutable ordered tier table.

    Construction validates coverage of ``[0, inf)``; lookups are pure.

    Usage:
        table = TierTable(DEFAULT_TIERS)
        table.lookup(150000).name  # "silver"
    """

    def __init__(self, tiers: Iterable[Tier]):
        self._tiers = tuple(tiers)
        self._validate()

    def _validate(self) -> None:
        if not self._tiers:
            raise ImproperlyConfigured("Tier table must define at least one tier.")

        names = set()
        expected_min = 0
        for index, tier in enumerate(self._tiers):
            if tier.name not in LoyaltyTier.values:
                raise ImproperlyConfigured(f"Unknown tier name: {tier.name!r}")
            if tier.name in names:
                raise ImproperlyConfigured(f"Duplicate tier: {tier.name!r}")
            names.add(tier.name)

            if tier.min_points != expected_min:
                raise ImproperlyConfigured(
                    f"Tier {tier.name!r} starts at {tier.min_points}, expected {expected_min}."
                )

            is_last = index == len(self._tiers) - 1
            if tier.max_points is None:
                if not is_last:
                    raise ImproperlyConfigured(
                        f"Only the last tier may be unbounded ({tier.name!r} is not last)."
                    )
                break
            if tier.max_points < tier.min_points:
                raise ImproperlyConfigured(f"Tier {tier.name!r} has max below min.")
            expected_min = tier.max_points + 1
        else:
            raise ImproperlyConfigured("The last tier must be unbounded (max None).")

    def __iter__(self) -> Iterator[Tier]:
        return iter(self._tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    @property
    def lowest(self) -> Tier:
        return self._tiers[0]

    def get(self, name: str) -> Tier | None:
        for tier in self._tiers:
            if tier.name == name:
                return tier
        return None

    def lookup(self, balance: int) -> Tier:
        """
        Return the tier whose range contains ``balance``.

        Balances matching no tier (only possible below zero) fall back to
        the lowest tier.
        """
        for tier in self._tiers:
            if tier.contains(balance):
                return tier
        return self.lowest


def get_tier_table() -> TierTable:
    """Build the tier table from settings (defaults to DEFAULT_TIERS)."""
    from loyaltyman.conf import loyaltyman_settings

    rows = loyaltyman_settings.TIERS
    if not rows:
        return TierTable(DEFAULT_TIERS)
    return TierTable(
        row if isinstance(row, Tier) else Tier(*row)
        for row in rows
    )


def lookup_tier(balance: int) -> Tier:
    """Shortcut for ``get_tier_table().lookup(balance)``."""
    return get_tier_table().lookup(balance)
