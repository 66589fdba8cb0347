"""
Loyaltyman Gates - Invariant checks.

G1: BalanceMatchesLedger - Customer.points_balance == sum of its transactions
G2: TierMatchesBalance - Customer.tier == tier table lookup of the balance
G3: SnapshotShape - Backup snapshot has every list, each holding records
G4: GrantReplay - Idempotency key was not applied before
"""

from dataclasses import dataclass

from django.db.models import Sum


class GateError(Exception):
    """Gate validation error."""

    def __init__(self, gate_name: str, message: str, details: dict | None = None):
        self.gate_name = gate_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{gate_name}] {message}")


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


# Snapshot list keys and the aliases older backups used for them
SNAPSHOT_KEYS = ("customers", "transactions", "tierBenefits", "events", "offers")
SNAPSHOT_ALIASES = {
    "tierBenefits": ("benefits", "levelBenefits"),
}


def snapshot_list(snapshot: dict, key: str):
    """Snapshot list by canonical key, falling back to its aliases."""
    if key in snapshot:
        return snapshot[key]
    for alias in SNAPSHOT_ALIASES.get(key, ()):
        if alias in snapshot:
            return snapshot[alias]
    return None


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Loyaltyman invariant gates."""

    # =========================================================================
    # G1: Balance Matches Ledger
    # =========================================================================

    @classmethod
    def ledger_sum(cls, customer_id: int) -> int:
        from loyaltyman.models import PointTransaction

        total = PointTransaction.objects.filter(customer_id=customer_id).aggregate(
            total=Sum("points")
        )["total"]
        return total or 0

    @classmethod
    def balance_matches_ledger(cls, customer_id: int) -> GateResult:
        """
        G1: Cached balance equals the sum of ledger entries.

        Args:
            customer_id: Customer ID

        Raises:
            GateError: If the cache drifted from the ledger
        """
        from loyaltyman.models import Customer

        balance = Customer.objects.values_list("points_balance", flat=True).get(pk=customer_id)
        ledger = cls.ledger_sum(customer_id)

        if balance != ledger:
            raise GateError(
                "G1_BalanceMatchesLedger",
                "Cached balance differs from ledger sum.",
                {"customer_id": customer_id, "balance": balance, "ledger_sum": ledger},
            )

        return GateResult(True, "G1_BalanceMatchesLedger")

    @classmethod
    def check_balance_matches_ledger(cls, customer_id: int) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.balance_matches_ledger(customer_id)
            return True
        except GateError:
            return False

    # =========================================================================
    # G2: Tier Matches Balance
    # =========================================================================

    @classmethod
    def tier_matches_balance(cls, customer_id: int) -> GateResult:
        """
        G2: Cached tier is the tier table lookup of the cached balance.

        Raises:
            GateError: If the tier is stale
        """
        from loyaltyman.models import Customer
        from loyaltyman.tiers import lookup_tier

        balance, tier = Customer.objects.values_list("points_balance", "tier").get(pk=customer_id)
        expected = lookup_tier(balance).name

        if tier != expected:
            raise GateError(
                "G2_TierMatchesBalance",
                f"Tier '{tier}' does not match balance {balance}.",
                {"customer_id": customer_id, "tier": tier, "expected": expected},
            )

        return GateResult(True, "G2_TierMatchesBalance")

    @classmethod
    def check_tier_matches_balance(cls, customer_id: int) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.tier_matches_balance(customer_id)
            return True
        except GateError:
            return False

    # =========================================================================
    # G3: Snapshot Shape
    # =========================================================================

    @classmethod
    def snapshot_shape(cls, snapshot) -> GateResult:
        """
        G3: Snapshot is a mapping with every expected list of records.

        Args:
            snapshot: Parsed backup (dict of lists of dicts)

        Raises:
            GateError: If a list is missing, not a list, or holds non-records
        """
        if not isinstance(snapshot, dict):
            raise GateError(
                "G3_SnapshotShape",
                "Snapshot must be an object.",
                {"type": type(snapshot).__name__},
            )

        for key in SNAPSHOT_KEYS:
            rows = snapshot_list(snapshot, key)
            if rows is None:
                raise GateError(
                    "G3_SnapshotShape",
                    f"Missing list '{key}'.",
                    {"key": key},
                )
            if not isinstance(rows, list):
                raise GateError(
                    "G3_SnapshotShape",
                    f"'{key}' must be a list.",
                    {"key": key, "type": type(rows).__name__},
                )
            for index, row in enumerate(rows):
                if not isinstance(row, dict):
                    raise GateError(
                        "G3_SnapshotShape",
                        f"'{key}[{index}]' must be an object.",
                        {"key": key, "index": index},
                    )

        return GateResult(True, "G3_SnapshotShape")

    @classmethod
    def check_snapshot_shape(cls, snapshot) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.snapshot_shape(snapshot)
            return True
        except GateError:
            return False

    # =========================================================================
    # G4: Grant Replay
    # =========================================================================

    @classmethod
    def grant_replay(cls, key: str) -> GateResult:
        """
        G4: Idempotency key has not been applied yet.

        Raises:
            GateError: If a grant with this key was already processed
        """
        from loyaltyman.models import ProcessedGrant

        processed = ProcessedGrant.objects.filter(key=key).first()
        if processed:
            raise GateError(
                "G4_GrantReplay",
                "Grant already applied.",
                {
                    "key": key,
                    "customer_id": processed.customer_id,
                    "transaction_id": processed.transaction_id,
                },
            )

        return GateResult(True, "G4_GrantReplay")

    @classmethod
    def is_replay(cls, key: str) -> bool:
        """Check if key was already processed (doesn't record)."""
        try:
            cls.grant_replay(key)
            return False
        except GateError:
            return True
