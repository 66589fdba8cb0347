"""
Loyaltyman signals — public event API.

Emitted signals (all sent once the atomic block has exited):
- customer_created: Emitted by CustomerAccountService.create()
- customer_deleted: Emitted by CustomerAccountService.delete()
- points_granted: Emitted by LedgerService.grant()
- verification_code_issued: Emitted by VerificationCodeIssuer.reissue()
"""

from django.dispatch import Signal

# Account signals
customer_created = Signal()  # sender=Customer, customer=Customer
customer_deleted = Signal()  # sender=Customer, customer_id=int, mobile=str

# Ledger signals
points_granted = Signal()  # sender=PointTransaction, customer=Customer, transaction=PointTransaction

# Verification signals
verification_code_issued = Signal()  # sender=Customer, customer=Customer
