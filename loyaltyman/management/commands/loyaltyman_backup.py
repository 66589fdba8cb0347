"""Management command to write a JSON backup of all loyalty tables."""

from django.core.management.base import BaseCommand

from loyaltyman.services.backup import BackupService


class Command(BaseCommand):
    help = "Write a timestamped backup file and keep only the newest BACKUP_MAX_FILES"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dir",
            default=None,
            help="Override BACKUP_DIR setting",
        )
        parser.add_argument(
            "--keep",
            type=int,
            default=None,
            help="Override BACKUP_MAX_FILES setting",
        )

    def handle(self, *args, **options):
        path = BackupService.write_backup(
            backup_dir=options["dir"],
            max_backups=options["keep"],
        )
        self.stdout.write(self.style.SUCCESS(f"Backup written to {path}."))
