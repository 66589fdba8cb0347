# Initial loyaltyman schema

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                (
                    "mobile",
                    models.CharField(
                        help_text="E.164 mobile number (ex: +5541999998888)",
                        max_length=16,
                        unique=True,
                        validators=[
                            django.core.validators.RegexValidator(
                                "^\\+?[1-9]\\d{1,14}$", "Invalid mobile number format"
                            )
                        ],
                        verbose_name="mobile",
                    ),
                ),
                (
                    "points_balance",
                    models.IntegerField(
                        default=0,
                        help_text="Sum of all point transactions",
                        verbose_name="points balance",
                    ),
                ),
                (
                    "tier",
                    models.CharField(
                        choices=[
                            ("bronze", "Bronze"),
                            ("silver", "Silver"),
                            ("gold", "Gold"),
                            ("diamond", "Diamond"),
                        ],
                        default="bronze",
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                (
                    "verification_code",
                    models.CharField(
                        blank=True,
                        help_text="Reissued on every login",
                        max_length=16,
                        verbose_name="verification code",
                    ),
                ),
                ("secret", models.CharField(max_length=128, verbose_name="secret")),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        verbose_name="created at",
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "customer",
                "verbose_name_plural": "customers",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="ProcessedGrant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=255, unique=True, verbose_name="key")),
                ("customer_id", models.BigIntegerField(db_index=True, verbose_name="customer id")),
                ("transaction_id", models.BigIntegerField(verbose_name="transaction id")),
                ("processed_at", models.DateTimeField(auto_now_add=True, verbose_name="processed at")),
            ],
            options={
                "verbose_name": "processed grant",
                "verbose_name_plural": "processed grants",
                "indexes": [models.Index(fields=["processed_at"], name="loyaltyman_grant_processed_idx")],
            },
        ),
        migrations.CreateModel(
            name="SpecialEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                (
                    "multiplier",
                    models.PositiveIntegerField(
                        help_text="Points are multiplied by this while the event runs",
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="multiplier",
                    ),
                ),
                ("start_at", models.DateTimeField(db_index=True, verbose_name="starts at")),
                ("end_at", models.DateTimeField(db_index=True, verbose_name="ends at")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="created at"),
                ),
            ],
            options={
                "verbose_name": "special event",
                "verbose_name_plural": "special events",
                "ordering": ["-start_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("multiplier__gte", 1)),
                        name="loyaltyman_event_multiplier_gte_1",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="SpecialOffer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "tier",
                    models.CharField(
                        choices=[
                            ("bronze", "Bronze"),
                            ("silver", "Silver"),
                            ("gold", "Gold"),
                            ("diamond", "Diamond"),
                        ],
                        db_index=True,
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                ("title", models.CharField(max_length=200, verbose_name="title")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                ("valid_until", models.DateTimeField(verbose_name="valid until")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="created at"),
                ),
            ],
            options={
                "verbose_name": "special offer",
                "verbose_name_plural": "special offers",
                "ordering": ["valid_until"],
            },
        ),
        migrations.CreateModel(
            name="TierBenefit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "tier",
                    models.CharField(
                        choices=[
                            ("bronze", "Bronze"),
                            ("silver", "Silver"),
                            ("gold", "Gold"),
                            ("diamond", "Diamond"),
                        ],
                        db_index=True,
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                ("benefit", models.CharField(max_length=255, verbose_name="benefit")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                (
                    "updated_at",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="updated at"),
                ),
            ],
            options={
                "verbose_name": "tier benefit",
                "verbose_name_plural": "tier benefits",
                "ordering": ["-updated_at"],
            },
        ),
        migrations.CreateModel(
            name="PointTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "points",
                    models.IntegerField(
                        help_text="Signed delta, multiplier already applied",
                        verbose_name="points",
                    ),
                ),
                (
                    "raw_points",
                    models.IntegerField(
                        help_text="Signed delta as entered, before the multiplier",
                        verbose_name="raw points",
                    ),
                ),
                ("multiplier", models.PositiveIntegerField(default=1, verbose_name="multiplier")),
                (
                    "description",
                    models.CharField(
                        help_text="Reason for the transaction",
                        max_length=255,
                        verbose_name="description",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        verbose_name="created at",
                    ),
                ),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transactions",
                        to="loyaltyman.customer",
                        verbose_name="customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "point transaction",
                "verbose_name_plural": "point transactions",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["customer", "-created_at"], name="loyaltyman_tx_customer_idx")
                ],
            },
        ),
    ]
