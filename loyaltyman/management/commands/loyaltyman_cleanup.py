"""Prune processed grant keys past their retention window."""

from django.core.management.base import BaseCommand

from loyaltyman.conf import loyaltyman_settings
from loyaltyman.models import ProcessedGrant


class Command(BaseCommand):
    help = "Remove processed grant keys older than GRANT_KEY_RETENTION_DAYS"

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Retention in days (default: GRANT_KEY_RETENTION_DAYS)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only count the keys that would be removed",
        )

    def handle(self, *args, **options):
        days = options["days"]
        if days is None:
            days = loyaltyman_settings.GRANT_KEY_RETENTION_DAYS

        if options["dry_run"]:
            count = ProcessedGrant.expired(days).count()
            self.stdout.write(f"{count} grant keys older than {days} days would be removed.")
            return

        removed, _ = ProcessedGrant.cleanup_old_keys(days=days)
        self.stdout.write(
            self.style.SUCCESS(f"Removed {removed} grant keys older than {days} days.")
        )
