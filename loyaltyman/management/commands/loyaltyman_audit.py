"""Management command to check cached balances and tiers against the ledger."""

from django.core.management.base import BaseCommand

from loyaltyman.gates import Gates
from loyaltyman.models import Customer
from loyaltyman.services.ledger import LedgerService


class Command(BaseCommand):
    help = "Report customers whose balance or tier disagree with the ledger"

    def add_arguments(self, parser):
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Rebuild balance and tier from the ledger for drifted customers",
        )

    def handle(self, *args, **options):
        drifted = 0
        for customer_id in Customer.objects.values_list("pk", flat=True):
            if Gates.check_balance_matches_ledger(customer_id) and Gates.check_tier_matches_balance(
                customer_id
            ):
                continue
            drifted += 1
            self.stdout.write(self.style.WARNING(f"Customer {customer_id} drifted from ledger."))
            if options["fix"]:
                LedgerService.recompute(customer_id)

        if options["fix"] and drifted:
            self.stdout.write(self.style.SUCCESS(f"Repaired {drifted} customers."))
        else:
            self.stdout.write(self.style.SUCCESS(f"{drifted} customers drifted."))
