from django.apps import AppConfig


class MerchConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.merch"
    label = "merch"
