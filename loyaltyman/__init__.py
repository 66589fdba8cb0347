"""
Django Loyaltyman - Loyalty points ledger.

Usage:
    from loyaltyman import LedgerService, CustomerAccountService

    customer = CustomerAccountService.create("Ana", "+5511999990000")
    customer = LedgerService.grant(customer.pk, 1000, "Pedido #123")
    history = LedgerService.history(customer.pk)

    # Partner verification
    customer = CustomerAccountService.login("+5511999990000")
    CustomerAccountService.verify("+5511999990000", customer.verification_code)
"""


def __getattr__(name):
    if name == "LedgerService":
        from loyaltyman.services.ledger import LedgerService

        return LedgerService
    if name == "CustomerAccountService":
        from loyaltyman.services.accounts import CustomerAccountService

        return CustomerAccountService
    if name == "VerificationCodeIssuer":
        from loyaltyman.services.verification import VerificationCodeIssuer

        return VerificationCodeIssuer
    if name == "BackupService":
        from loyaltyman.services.backup import BackupService

        return BackupService
    if name == "EventService":
        from loyaltyman.services.events import EventService

        return EventService
    if name == "Gates":
        from loyaltyman.gates import Gates

        return Gates
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "LedgerService",
    "CustomerAccountService",
    "VerificationCodeIssuer",
    "BackupService",
    "EventService",
    "Gates",
]
__version__ = "0.1.0"
