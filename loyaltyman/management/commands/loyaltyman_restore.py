"""Management command to restore all loyalty tables from a JSON backup."""

from django.core.management.base import BaseCommand, CommandError

from loyaltyman.exceptions import BulkRestoreFailure
from loyaltyman.services.backup import BackupService


class Command(BaseCommand):
    help = "Replace all loyalty data with the contents of a backup file (all or nothing)"

    def add_arguments(self, parser):
        parser.add_argument("path", help="Backup JSON file")

    def handle(self, *args, **options):
        try:
            counts = BackupService.load(options["path"])
        except BulkRestoreFailure as e:
            raise CommandError(str(e)) from e

        summary = ", ".join(f"{count} {key}" for key, count in counts.items())
        self.stdout.write(self.style.SUCCESS(f"Restored {summary}."))
