from django.apps import AppConfig


class LoyaltymanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "loyaltyman"
    verbose_name = "Loyaltyman - Loyalty Program"
