"""Backup service — full export and all-or-nothing restore.

A snapshot is a dict of five lists of flat records (model field values,
foreign keys as ``<name>_id``):

    {"customers": [...], "transactions": [...], "tierBenefits": [...],
     "events": [...], "offers": [...]}

Restore is a full replace, never a merge.
"""

import json
import logging
from collections import defaultdict
from datetime import datetime
from pathlib import Path

from django.core.exceptions import ValidationError
from django.core.management.color import no_style
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, connection, transaction

from loyaltyman.conf import current_time, loyaltyman_settings
from loyaltyman.exceptions import BulkRestoreFailure
from loyaltyman.gates import GateError, Gates, snapshot_list
from loyaltyman.models import (
    Customer,
    PointTransaction,
    ProcessedGrant,
    SpecialEvent,
    SpecialOffer,
    TierBenefit,
)

logger = logging.getLogger(__name__)

# Snapshot key -> model, in insert order
TABLES = (
    ("customers", Customer),
    ("transactions", PointTransaction),
    ("tierBenefits", TierBenefit),
    ("events", SpecialEvent),
    ("offers", SpecialOffer),
)

# Dependents first
DELETE_ORDER = (
    PointTransaction,
    ProcessedGrant,
    Customer,
    TierBenefit,
    SpecialOffer,
    SpecialEvent,
)

BACKUP_PREFIX = "backup-"


def _is_optional(field) -> bool:
    return (
        field.has_default()
        or field.null
        or field.blank
        or getattr(field, "auto_now", False)
        or getattr(field, "auto_now_add", False)
    )


class BackupService:
    """
    Export and restore of every loyalty table.

    Usage:
        snapshot = BackupService.export_all()
        BackupService.import_all(snapshot)

        path = BackupService.write_backup()   # backups/backup-<ts>.json
        BackupService.load(path)
    """

    # ======================================================================
    # Snapshot API
    # ======================================================================

    @classmethod
    def export_all(cls) -> dict[str, list[dict]]:
        """
        Point-in-time read of all tables.

        Customer rows are locked first. Grants and deletes take the same row
        lock, so no ledger row can commit for an exported customer while the
        export runs. Ledger rows of customers created after the lock are left
        out, keeping every exported balance equal to its exported ledger sum.
        """
        with transaction.atomic():
            customers = list(cls._customers_for_export())
            customer_ids = {customer.pk for customer in customers}
            rows = {
                "customers": customers,
                "transactions": [
                    tx
                    for tx in PointTransaction.objects.order_by("pk")
                    if tx.customer_id in customer_ids
                ],
            }
            for key, model in TABLES:
                if key not in rows:
                    rows[key] = list(model.objects.order_by("pk"))

            return {
                key: [cls._to_record(obj) for obj in rows[key]]
                for key, _ in TABLES
            }

    @classmethod
    def import_all(cls, snapshot: dict) -> dict[str, int]:
        """
        Replace all loyalty data with the snapshot.

        Every record is validated before anything is deleted. Deletes and
        inserts run in one atomic block.

        Args:
            snapshot: Dict of lists as produced by export_all() (also accepts
                "benefits"/"levelBenefits" for "tierBenefits")

        Returns:
            Row counts per snapshot key

        Raises:
            BulkRestoreFailure: If the snapshot is malformed or the restore
                could not commit. Existing data is untouched either way.
        """
        try:
            Gates.snapshot_shape(snapshot)
        except GateError as exc:
            raise BulkRestoreFailure("SNAPSHOT_INVALID", message=exc.message, **exc.details) from exc

        rows = {
            key: [
                cls._from_record(model, record, key, index)
                for index, record in enumerate(snapshot_list(snapshot, key))
            ]
            for key, model in TABLES
        }
        cls._check_references(rows)

        try:
            with transaction.atomic():
                for model in DELETE_ORDER:
                    model.objects.all().delete()
                for key, model in TABLES:
                    model.objects.bulk_create(rows[key])
                cls._reset_sequences()
        except DatabaseError as exc:
            logger.exception("Backup restore failed, rolled back")
            raise BulkRestoreFailure("RESTORE_FAILED", error=str(exc)) from exc

        cls._warn_on_drift(rows)
        counts = {key: len(rows[key]) for key, _ in TABLES}
        logger.info("Backup restored: %s", counts)
        return counts

    # ======================================================================
    # File API
    # ======================================================================

    @classmethod
    def dump(cls, path: str | Path, snapshot: dict | None = None) -> Path:
        """Write a snapshot (default: export_all()) as JSON."""
        path = Path(path)
        if snapshot is None:
            snapshot = cls.export_all()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            json.dump(snapshot, fh, cls=DjangoJSONEncoder, indent=2)
        return path

    @classmethod
    def load(cls, path: str | Path) -> dict[str, int]:
        """Restore from a JSON backup file."""
        try:
            with Path(path).open(encoding="utf-8") as fh:
                snapshot = json.load(fh)
        except OSError as exc:
            raise BulkRestoreFailure("RESTORE_FAILED", path=str(path), error=str(exc)) from exc
        except ValueError as exc:
            raise BulkRestoreFailure("SNAPSHOT_INVALID", path=str(path), error=str(exc)) from exc
        return cls.import_all(snapshot)

    @classmethod
    def write_backup(
        cls,
        backup_dir: str | Path | None = None,
        max_backups: int | None = None,
        now: datetime | None = None,
    ) -> Path:
        """
        Write a timestamped backup file and prune old ones.

        Args:
            backup_dir: Target directory (default BACKUP_DIR)
            max_backups: Files to keep (default BACKUP_MAX_FILES)
            now: Timestamp for the file name (defaults to the clock)

        Returns:
            Path of the written file
        """
        backup_dir = Path(backup_dir or loyaltyman_settings.BACKUP_DIR)
        if max_backups is None:
            max_backups = loyaltyman_settings.BACKUP_MAX_FILES
        now = now or current_time()

        path = cls.dump(backup_dir / f"{BACKUP_PREFIX}{now:%Y-%m-%d-%H-%M-%S}.json")
        logger.info("Backup written to %s", path)
        cls.prune(backup_dir, max_backups)
        return path

    @classmethod
    def prune(cls, backup_dir: str | Path, max_backups: int) -> list[Path]:
        """Delete all but the newest max_backups backup files."""
        files = sorted(Path(backup_dir).glob(f"{BACKUP_PREFIX}*.json"))
        stale = files[: max(len(files) - max_backups, 0)]
        for path in stale:
            path.unlink()
            logger.info("Old backup %s removed", path)
        return stale

    # ======================================================================
    # Internals
    # ======================================================================

    @classmethod
    def _customers_for_export(cls):
        """Customers locked for the export. MUST be called inside transaction.atomic()."""
        return Customer.objects.select_for_update().order_by("pk")

    @classmethod
    def _to_record(cls, instance) -> dict:
        return {
            field.attname: field.value_from_object(instance)
            for field in instance._meta.concrete_fields
        }

    @classmethod
    def _from_record(cls, model, record: dict, key: str, index: int):
        values = {}
        for field in model._meta.concrete_fields:
            if field.attname in record:
                values[field.attname] = record[field.attname]
            elif field.name in record:
                values[field.attname] = record[field.name]
            elif field.primary_key or not _is_optional(field):
                raise BulkRestoreFailure(
                    "SNAPSHOT_INVALID",
                    message=f"'{key}[{index}]' is missing '{field.attname}'.",
                    key=key,
                    index=index,
                    field=field.attname,
                )

        instance = model(**values)
        relations = [field.name for field in model._meta.concrete_fields if field.is_relation]
        try:
            instance.full_clean(
                exclude=relations,
                validate_unique=False,
                validate_constraints=False,
            )
            for field in model._meta.concrete_fields:
                if field.is_relation:
                    target_pk = field.target_field
                    setattr(instance, field.attname, target_pk.to_python(getattr(instance, field.attname)))
        except ValidationError as exc:
            raise BulkRestoreFailure(
                "SNAPSHOT_INVALID",
                message=f"'{key}[{index}]' has invalid values.",
                key=key,
                index=index,
                errors=getattr(exc, "message_dict", {"__all__": exc.messages}),
            ) from exc
        return instance

    @classmethod
    def _check_references(cls, rows: dict) -> None:
        customer_ids = {customer.pk for customer in rows["customers"]}
        for index, tx in enumerate(rows["transactions"]):
            if tx.customer_id not in customer_ids:
                raise BulkRestoreFailure(
                    "SNAPSHOT_INVALID",
                    message=f"'transactions[{index}]' references unknown customer {tx.customer_id}.",
                    key="transactions",
                    index=index,
                )

    @classmethod
    def _reset_sequences(cls) -> None:
        statements = connection.ops.sequence_reset_sql(no_style(), [model for _, model in TABLES])
        if statements:
            with connection.cursor() as cursor:
                for sql in statements:
                    cursor.execute(sql)

    @classmethod
    def _warn_on_drift(cls, rows: dict) -> None:
        sums = defaultdict(int)
        for tx in rows["transactions"]:
            sums[tx.customer_id] += tx.points
        for customer in rows["customers"]:
            if customer.points_balance != sums[customer.pk]:
                logger.warning(
                    "Restored customer %s balance %s differs from ledger sum %s",
                    customer.pk,
                    customer.points_balance,
                    sums[customer.pk],
                )
