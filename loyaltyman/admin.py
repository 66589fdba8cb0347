"""Loyaltyman admin.

The ledger is read-only here: points change only through LedgerService.
"""

from django.contrib import admin
from django.utils.html import format_html

from loyaltyman.models import (
    Customer,
    PointTransaction,
    SpecialEvent,
    SpecialOffer,
    TierBenefit,
)

TIER_COLORS = {
    "bronze": "#cd7f32",
    "silver": "#c0c0c0",
    "gold": "#ffd700",
    "diamond": "#b9f2ff",
}


def tier_badge_html(tier: str, label: str):
    color = TIER_COLORS.get(tier, "#6c757d")
    text_color = "#fff" if tier == "bronze" else "#000"
    return format_html(
        '<span style="background:{}; color:{}; padding:2px 8px; '
        'border-radius:3px; font-size:11px;">{}</span>',
        color,
        text_color,
        label,
    )


# ===========================================
# Inline Classes (must be defined before CustomerAdmin)
# ===========================================


class PointTransactionInline(admin.TabularInline):
    model = PointTransaction
    extra = 0
    readonly_fields = ["points", "raw_points", "multiplier", "description", "created_at", "created_by"]
    ordering = ["-created_at", "-id"]

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# Customer Admin
# ===========================================


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "mobile",
        "points_balance",
        "tier_badge",
        "verification_code",
        "created_at",
    ]
    list_filter = ["tier"]
    search_fields = ["name", "mobile"]
    readonly_fields = [
        "points_balance",
        "tier",
        "verification_code",
        "secret",
        "created_at",
        "updated_at",
    ]
    inlines = [PointTransactionInline]

    # Signup goes through CustomerAccountService.create (code and hashed secret)
    def has_add_permission(self, request):
        return False

    def tier_badge(self, obj):
        return tier_badge_html(obj.tier, obj.get_tier_display())

    tier_badge.short_description = "Tier"


@admin.register(PointTransaction)
class PointTransactionAdmin(admin.ModelAdmin):
    list_display = [
        "created_at",
        "customer_mobile",
        "points_display",
        "multiplier",
        "description",
    ]
    search_fields = ["customer__mobile", "customer__name", "description"]
    readonly_fields = [
        "customer",
        "points",
        "raw_points",
        "multiplier",
        "description",
        "created_at",
        "created_by",
    ]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def customer_mobile(self, obj):
        return obj.customer.mobile

    customer_mobile.short_description = "Customer"

    def points_display(self, obj):
        if obj.points > 0:
            return format_html('<span style="color:green">+{}</span>', obj.points)
        return format_html('<span style="color:red">{}</span>', obj.points)

    points_display.short_description = "Points"


# ===========================================
# Promotions Admin
# ===========================================


@admin.register(SpecialEvent)
class SpecialEventAdmin(admin.ModelAdmin):
    list_display = ["name", "multiplier", "start_at", "end_at", "is_active"]
    list_filter = ["is_active"]
    search_fields = ["name"]
    list_editable = ["is_active"]


@admin.register(TierBenefit)
class TierBenefitAdmin(admin.ModelAdmin):
    list_display = ["benefit", "tier_badge", "is_active", "updated_at"]
    list_filter = ["tier", "is_active"]
    search_fields = ["benefit"]

    def tier_badge(self, obj):
        return tier_badge_html(obj.tier, obj.get_tier_display())

    tier_badge.short_description = "Tier"


@admin.register(SpecialOffer)
class SpecialOfferAdmin(admin.ModelAdmin):
    list_display = ["title", "tier", "valid_until", "is_active"]
    list_filter = ["tier", "is_active"]
    search_fields = ["title"]
