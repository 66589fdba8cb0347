"""Loyaltyman services.

- ledger: LedgerService (grant, deduct, history, recompute)
- accounts: CustomerAccountService (create, lookup, login, verify, delete)
- verification: VerificationCodeIssuer (reissue)
- events: EventService (special event multipliers)
- perks: BenefitService, OfferService
- backup: BackupService (export/import)
"""

from loyaltyman.services import events
from loyaltyman.services import verification
from loyaltyman.services import ledger
from loyaltyman.services import accounts
from loyaltyman.services import perks
from loyaltyman.services import backup

__all__ = ["events", "verification", "ledger", "accounts", "perks", "backup"]
